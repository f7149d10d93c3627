"""Auth Router - schema init and account management.

Login itself is the HTTP Basic gate in ``api.dependencies``; this router
only creates accounts.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_app_config, require_account
from api.schemas.auth import CreateAccountRequest, CreateAccountResponse, InitResponse
from config import AppConfig
from storage.database import DatabaseError, init_database
from storage.repositories import AuthRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post("/init", response_model=InitResponse)
async def initialize(config: AppConfig = Depends(get_app_config)):
    """Create the schema and seed the configured admin account, if any."""
    try:
        ready = await init_database()
        seeded = None
        seed = config.auth
        if seed.seed_email and seed.seed_password:
            await AuthRepository().create_account(
                seed.seed_email,
                seed.seed_password.get_secret_value(),
                seed.seed_name,
            )
            seeded = seed.seed_email
    except DatabaseError as e:
        logger.error(f"Init error: {e.message}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Initialization failed", "details": e.message},
        )

    return InitResponse(
        success=True,
        message="Database initialized" if ready else "Database initialization still running",
        schema_ready=ready,
        seeded_account=seeded,
    )


@router.post(
    "/auth/create-user",
    response_model=CreateAccountResponse,
    dependencies=[Depends(require_account)],
)
async def create_user(request: CreateAccountRequest):
    """Create a dashboard login. Existing emails are left untouched."""
    if not request.email or not request.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        created = await AuthRepository().create_account(
            request.email, request.password, request.name
        )
    except DatabaseError as e:
        logger.error(f"Create user error: {e.message}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to create user", "details": e.message},
        )

    message = (
        f"User {request.email} created successfully"
        if created
        else f"User {request.email} already exists"
    )
    return CreateAccountResponse(
        success=True, message=message, email=request.email, created=created
    )
