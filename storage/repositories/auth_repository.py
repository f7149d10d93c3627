"""Repository for dashboard login accounts (``auth_users``).

Independent of the usage tables: the ingestion and aggregation code never
reads these rows.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from storage.models import AuthAccount
from utils.security import get_password_hash, verify_password

from .base import BaseRepository

logger = logging.getLogger(__name__)


class AuthRepository(BaseRepository[AuthAccount]):
    """Account creation and credential checks."""

    async def get_by_email(self, email: str) -> Optional[AuthAccount]:
        row = await self._query_one(
            "SELECT id, email, password_hash, name, created_at "
            "FROM auth_users WHERE email = ? LIMIT 1",
            (email,),
        )
        return AuthAccount.from_row(row) if row else None

    async def create_account(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
    ) -> bool:
        """Create an account unless the email is already registered.

        Returns:
            True if a new account was created.
        """
        loop = asyncio.get_event_loop()
        password_hash = await loop.run_in_executor(None, get_password_hash, password)
        result = await self._execute(
            "INSERT INTO auth_users (email, password_hash, name) VALUES (?, ?, ?) "
            "ON CONFLICT (email) DO NOTHING",
            (email, password_hash, name or email.split("@")[0]),
        )
        created = result.affected_count > 0
        if created:
            logger.info(f"Created account: {email}")
        else:
            logger.info(f"Account already exists: {email}")
        return created

    async def authenticate(self, email: str, password: str) -> Optional[AuthAccount]:
        """Return the account when the credentials match, else None."""
        account = await self.get_by_email(email)
        if account is None:
            return None
        loop = asyncio.get_event_loop()
        valid = await loop.run_in_executor(
            None, verify_password, password, account.password_hash
        )
        return account if valid else None

    async def count(self) -> int:
        return await self._count("auth_users")
