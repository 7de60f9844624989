"""
Request Repository

Persistence for transport requests. Reads join the assigned driver and vehicle;
status changes go through ``apply_transition`` which locks the row, re-checks the
source status and writes the new fields and the audit entry in one transaction.
"""

import json
from typing import Any
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional

import asyncpg

from tms_api.workflow.db.repository_base import SCHEMA
from tms_api.workflow.db.repository_base import BaseRepository
from tms_api.workflow.db.repository_base import storage_errors
from tms_api.workflow.enums import AuditAction

SELECT_WITH_ASSIGNMENT = f"""
    SELECT tr.*,
           d.name AS driver_name,
           d.contact AS driver_contact,
           v.type AS vehicle_type,
           v.vehicle_number AS vehicle_number
    FROM {SCHEMA}.transport_requests tr
    LEFT JOIN {SCHEMA}.drivers d ON tr.driver_id = d.id
    LEFT JOIN {SCHEMA}.vehicles v ON tr.vehicle_id = v.id
"""


class TransitionConflict(Exception):
    """The row's status is no longer one the transition may start from."""

    def __init__(self, current_status: str):
        super().__init__(current_status)
        self.current_status = current_status


class RequestRepository(BaseRepository):
    """Transport request repository."""

    def __init__(self, pool: asyncpg.Pool):
        super().__init__(pool, "transport_requests", "id")

    async def create(self, fields: Dict[str, Any], performed_by: str) -> int:
        """
        Insert a new request.

        Args:
            fields: Column values; ``officials`` is a list of dicts stored as JSONB
            performed_by: Who submitted the request

        Returns:
            The generated request id
        """
        values = dict(fields)
        values["officials"] = json.dumps(values.get("officials") or [])
        created = await self.insert(values, performed_by)
        return created["id"]

    async def get(self, request_id: int) -> Optional[Dict[str, Any]]:
        """Get one request with its driver and vehicle details, or None."""
        async with storage_errors("read transport_requests"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(f"{SELECT_WITH_ASSIGNMENT} WHERE tr.id = $1", request_id)
                return dict(row) if row else None

    async def list_all(self, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get every request, newest first."""
        order_clause = order_by or "tr.request_generated_date DESC, tr.id DESC"
        async with storage_errors("list transport_requests"):
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(f"{SELECT_WITH_ASSIGNMENT} ORDER BY {order_clause}")
                return [dict(row) for row in rows]

    async def count_referencing(self, column: str, value: str) -> int:
        """Count requests whose ``column`` (driver_id, vehicle_id or pd_id) equals ``value``."""
        if column not in ("driver_id", "vehicle_id", "pd_id"):
            raise ValueError(f"Unsupported reference column: {column}")
        async with storage_errors("count transport_requests"):
            async with self.pool.acquire() as conn:
                return await conn.fetchval(f"SELECT COUNT(*) FROM {self.qualified_table} WHERE {column} = $1", value)

    async def apply_transition(
        self,
        request_id: int,
        fields: Dict[str, Any],
        allowed_from: Iterable[str],
        performed_by: str,
        action: AuditAction,
    ) -> Optional[Dict[str, Any]]:
        """
        Atomically move a request to a new status.

        Args:
            request_id: Request to update
            fields: Columns to write, including ``status``
            allowed_from: Statuses the row must currently be in
            performed_by: Who is applying the transition
            action: Audit action recorded

        Returns:
            The updated request, or None if no request has this id

        Raises:
            TransitionConflict: If the locked row is not in an allowed status
            StorageError: If the database fails; nothing is committed
        """
        allowed = list(allowed_from)
        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(fields, start=2))

        async with storage_errors(f"{action.value.lower()} transport_requests"):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    current = await conn.fetchrow(
                        f"SELECT * FROM {self.qualified_table} WHERE id = $1 FOR UPDATE",
                        request_id,
                    )
                    if current is None:
                        return None
                    if current["status"] not in allowed:
                        raise TransitionConflict(current["status"])

                    await conn.execute(
                        f"UPDATE {self.qualified_table} SET {assignments} WHERE id = $1",
                        request_id,
                        *fields.values(),
                    )
                    old_values = {column: current[column] for column in fields}
                    await self._write_audit(conn, request_id, action, performed_by, old_values, fields)

                    row = await conn.fetchrow(f"{SELECT_WITH_ASSIGNMENT} WHERE tr.id = $1", request_id)
                    return dict(row)
