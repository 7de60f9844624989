"""Database migrations for the requisition schema.

Full schema creation lives in schema.sql and is executed by DomainDBPool. This module
holds the incremental steps applied on every startup to databases created by earlier
releases.
"""

from pathlib import Path

import asyncpg
from loguru import logger

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

STATUS_CHECK = (
    "CHECK (status IN ('Pending', 'Recommended', 'Not Recommended', 'Forwarded', "
    "'Approved', 'Disapproved', 'Cancelled'))"
)


def load_schema_sql() -> str:
    """Read schema.sql.

    Raises
    ------
    FileNotFoundError
        If schema.sql is missing from the package
    """
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")
    return SCHEMA_PATH.read_text(encoding="utf-8")


async def run_incremental_migrations(pool: asyncpg.Pool) -> None:
    """Run only incremental migrations.

    Safe to call on every startup. Use when the schema and tables already exist so that
    older databases pick up the current status set without re-running the full schema.
    """
    async with pool.acquire() as conn:
        await _run_incremental_migrations_impl(conn)


async def _run_incremental_migrations_impl(conn: asyncpg.Connection) -> None:
    """Normalize legacy statuses and widen the status constraint to include Cancelled."""
    async with conn.transaction():
        # 'Rejected' was never reachable by any transition; old rows read as Disapproved
        result = await conn.execute(
            """
            UPDATE tms.transport_requests
            SET status = 'Disapproved'
            WHERE status = 'Rejected'
            """
        )
        normalized = int(result.split()[-1]) if result else 0
        if normalized:
            logger.info("Normalized legacy Rejected requests", count=normalized)

        await conn.execute(
            """
            ALTER TABLE tms.transport_requests
            DROP CONSTRAINT IF EXISTS transport_requests_status_check
            """
        )
        await conn.execute(
            f"""
            ALTER TABLE tms.transport_requests
            ADD CONSTRAINT transport_requests_status_check {STATUS_CHECK}
            """
        )
    logger.debug("Ensured status constraint on tms.transport_requests")
