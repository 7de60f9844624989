"""
Driver Repository

Repository for drivers assignable to forwarded requests.
"""

from typing import Any
from typing import Dict
from typing import Optional

import asyncpg

from tms_api.workflow.db.repository_base import BaseRepository
from tms_api.workflow.db.repository_base import storage_errors


class DriverRepository(BaseRepository):
    """Driver repository."""

    def __init__(self, pool: asyncpg.Pool):
        super().__init__(pool, "drivers", "id")

    async def find_by_name_and_contact(self, name: str, contact: str) -> Optional[Dict[str, Any]]:
        """Get the driver whose name and contact both match, if any."""
        async with storage_errors("read drivers"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT * FROM {self.qualified_table} WHERE name = $1 AND contact = $2",
                    name,
                    contact,
                )
                return dict(row) if row else None
