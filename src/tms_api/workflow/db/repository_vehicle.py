"""
Vehicle Repository

Repository for vehicles assignable to forwarded requests.
"""

from typing import Any
from typing import Dict
from typing import Optional

import asyncpg

from tms_api.workflow.db.repository_base import BaseRepository
from tms_api.workflow.db.repository_base import storage_errors


class VehicleRepository(BaseRepository):
    """Vehicle repository."""

    def __init__(self, pool: asyncpg.Pool):
        super().__init__(pool, "vehicles", "id")

    async def get_by_vehicle_number(self, vehicle_number: str) -> Optional[Dict[str, Any]]:
        """Get vehicle by its external number."""
        async with storage_errors("read vehicles"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT * FROM {self.qualified_table} WHERE vehicle_number = $1",
                    vehicle_number,
                )
                return dict(row) if row else None
