"""Repository for tracked users (people who appear in usage reports)."""

from __future__ import annotations

import logging
from typing import Optional

from storage.database import QueryFailure
from storage.models import TrackedUser

from .base import BaseRepository

logger = logging.getLogger(__name__)


def display_name_for(email: str) -> str:
    """Local part of an email address, used as the default display name."""
    return email.split("@")[0]


class UserRepository(BaseRepository[TrackedUser]):
    """Lookup and lazy creation of rows in ``users``."""

    async def get_by_email(self, email: str) -> Optional[TrackedUser]:
        row = await self._query_one(
            "SELECT id, email, user_name, created_at FROM users WHERE email = ?",
            (email,),
        )
        return TrackedUser.from_row(row) if row else None

    async def ensure_user(self, email: str) -> TrackedUser:
        """Return the user for ``email``, creating it if absent.

        The insert ignores a concurrent creation of the same email, so two
        uploads racing on a new user both end up with the same row.
        """
        user = await self.get_by_email(email)
        if user is not None:
            return user

        result = await self._execute(
            "INSERT INTO users (email, user_name) VALUES (?, ?) "
            "ON CONFLICT (email) DO NOTHING",
            (email, display_name_for(email)),
        )
        user = await self.get_by_email(email)
        if user is None:
            raise QueryFailure(f"User {email} missing after insert")
        if result.affected_count:
            logger.info(f"Created new user: {email} with ID {user.id}")
        return user

    async def list_users(self) -> list[TrackedUser]:
        rows = await self._query(
            "SELECT id, email, user_name, created_at FROM users ORDER BY email"
        )
        return [TrackedUser.from_row(r) for r in rows]

    async def count(self) -> int:
        return await self._count("users")
