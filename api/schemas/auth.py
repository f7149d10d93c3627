"""Account and system schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class CreateAccountRequest(BaseModel):
    """Request to create a dashboard login."""
    email: str = ""
    password: str = ""
    name: Optional[str] = Field(None, description="Display name, defaults to the email's local part")


class CreateAccountResponse(BaseModel):
    success: bool
    message: str
    email: str
    created: bool


class InitResponse(BaseModel):
    success: bool
    message: str
    schema_ready: bool
    seeded_account: Optional[str] = None


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    version: str
    backend: str
    location: Optional[str] = None
    schema_ready: bool = False
