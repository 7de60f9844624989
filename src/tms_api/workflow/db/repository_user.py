"""
User Repository

Repository for user accounts. Rows include the stored credential; the identity service
strips it before anything leaves the service.
"""

from typing import Any
from typing import Dict
from typing import Optional

import asyncpg

from tms_api.workflow.db.repository_base import BaseRepository
from tms_api.workflow.db.repository_base import storage_errors
from tms_api.workflow.enums import AuditAction


class UserRepository(BaseRepository):
    """User repository."""

    AUDIT_EXCLUDED_COLUMNS = frozenset({"password"})

    def __init__(self, pool: asyncpg.Pool):
        super().__init__(pool, "users", "id")

    async def _fetch_one_by(self, column: str, value: str) -> Optional[Dict[str, Any]]:
        async with storage_errors("read users"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"SELECT * FROM {self.qualified_table} WHERE {column} = $1", value)
                return dict(row) if row else None

    async def get_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        """Get user by username."""
        return await self._fetch_one_by("username", username)

    async def get_by_employee_number(self, employee_number: str) -> Optional[Dict[str, Any]]:
        """Get user by employee number."""
        return await self._fetch_one_by("employee_number", employee_number)

    async def count_pinned_requesters(self, pd_id: str) -> int:
        """Count requesters pinned to a recommender."""
        async with storage_errors("count users"):
            async with self.pool.acquire() as conn:
                return await conn.fetchval(f"SELECT COUNT(*) FROM {self.qualified_table} WHERE pd_id = $1", pd_id)

    async def set_password(
        self,
        user_id: str,
        stored_credential: str,
        performed_by: str,
        action: AuditAction,
    ) -> bool:
        """Replace a user's stored credential. Returns False if the user does not exist."""
        row = await self.update(user_id, {"password": stored_credential}, performed_by, action=action)
        return row is not None
