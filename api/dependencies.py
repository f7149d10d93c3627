"""Shared dependencies for API routers."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from config import AppConfig, get_config
from storage.database import DatabaseError, init_database
from storage.models import AuthAccount
from storage.repositories import AuthRepository

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


def get_app_config() -> AppConfig:
    """Dependency for the process configuration (overridable in tests)."""
    return get_config()


async def ensure_schema() -> None:
    """Make sure tables exist before a handler touches them.

    A no-op once the schema is in place; bounded by the init timeout.
    """
    try:
        await init_database()
    except DatabaseError as e:
        logger.error(f"Database initialization failed: {e.message}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Database initialization failed", "details": e.message},
        )


async def require_account(
    credentials: Optional[HTTPBasicCredentials] = Depends(_basic),
    config: AppConfig = Depends(get_app_config),
    _schema: None = Depends(ensure_schema),
) -> Optional[AuthAccount]:
    """Authentication gate: HTTP Basic checked against auth_users.

    Returns None when authentication is disabled in configuration.
    """
    if not config.auth.required:
        return None

    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid email or password",
        headers={"WWW-Authenticate": "Basic"},
    )
    if credentials is None or not credentials.username or not credentials.password:
        raise unauthorized

    try:
        account = await AuthRepository().authenticate(
            credentials.username, credentials.password
        )
    except DatabaseError as e:
        logger.error(f"Auth lookup failed: {e.message}")
        raise HTTPException(
            status_code=500,
            detail={"error": "Authentication failed", "details": e.message},
        )

    if account is None:
        logger.info(f"Rejected login for {credentials.username}")
        raise unauthorized
    return account
