"""
Audit Trail Repository

Read access to the append-only audit trail. Entries are written by BaseRepository in the
same transaction as the change they describe.
"""

from typing import Any
from typing import Dict
from typing import List

import asyncpg

from tms_api.workflow.db.repository_base import SCHEMA
from tms_api.workflow.db.repository_base import storage_errors


class AuditTrailRepository:
    """Audit trail repository (append-only)."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def list_for_entity(self, entity_type: str, entity_id: Any) -> List[Dict[str, Any]]:
        """Get every entry for one entity, oldest first."""
        async with storage_errors("read audit_trail"):
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT * FROM {SCHEMA}.audit_trail
                    WHERE entity_type = $1 AND entity_id = $2
                    ORDER BY timestamp, audit_id
                    """,
                    entity_type,
                    str(entity_id),
                )
                return [dict(row) for row in rows]
