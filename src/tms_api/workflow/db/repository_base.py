"""
Base Repository

Base class providing plain CRUD over one table of the tms schema. Every write runs in a
single transaction together with its audit_trail row, and database failures are
translated into domain errors so callers never see asyncpg exceptions.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import asyncpg
from loguru import logger

from tms_api.exceptions import DuplicateEntity
from tms_api.exceptions import EntityInUse
from tms_api.exceptions import StorageError
from tms_api.workflow.enums import AuditAction

SCHEMA = "tms"


@asynccontextmanager
async def storage_errors(
    operation: str,
    duplicate_message: Optional[str] = None,
    in_use_message: Optional[str] = None,
):
    """
    Translate database failures raised inside the block.

    Args:
        operation: Short description used in logs and error details
        duplicate_message: When set, unique violations raise DuplicateEntity with this detail
        in_use_message: When set, foreign-key violations raise EntityInUse with this detail

    Raises:
        DuplicateEntity, EntityInUse, StorageError
    """
    try:
        yield
    except asyncpg.UniqueViolationError as e:
        if duplicate_message:
            raise DuplicateEntity(duplicate_message) from e
        logger.error(f"Storage failure during {operation}: {e}")
        raise StorageError(f"Storage failure during {operation}: {e}") from e
    except asyncpg.ForeignKeyViolationError as e:
        if in_use_message:
            raise EntityInUse(in_use_message) from e
        logger.error(f"Storage failure during {operation}: {e}")
        raise StorageError(f"Storage failure during {operation}: {e}") from e
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
        logger.error(f"Storage failure during {operation}: {e}", error_type=type(e).__name__)
        raise StorageError(f"Storage failure during {operation}: {e}") from e


class BaseRepository:
    """
    Base repository with common CRUD operations.

    All concrete repositories (UserRepository, DriverRepository, etc.) inherit from this.
    """

    # Columns never copied into audit_trail values
    AUDIT_EXCLUDED_COLUMNS: frozenset = frozenset()

    def __init__(self, pool: asyncpg.Pool, table_name: str, id_column: str = "id"):
        """
        Initialize base repository.

        Args:
            pool: asyncpg connection pool
            table_name: Database table name (without schema prefix)
            id_column: Primary key column name
        """
        self.pool = pool
        self.table = table_name
        self.id_col = id_column

    @property
    def qualified_table(self) -> str:
        return f"{SCHEMA}.{self.table}"

    async def get(self, entity_id: Any) -> Optional[Dict[str, Any]]:
        """
        Get one row by primary key.

        Args:
            entity_id: Primary key value

        Returns:
            Dict of row data or None if not found
        """
        async with storage_errors(f"read {self.table}"):
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT * FROM {self.qualified_table} WHERE {self.id_col} = $1",
                    entity_id,
                )
                return dict(row) if row else None

    async def list_all(self, order_by: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get every row of the table.

        Args:
            order_by: Optional ORDER BY clause body (column names only)

        Returns:
            List of dicts, one per row
        """
        order_clause = f" ORDER BY {order_by}" if order_by else ""
        async with storage_errors(f"list {self.table}"):
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(f"SELECT * FROM {self.qualified_table}{order_clause}")
                return [dict(row) for row in rows]

    async def exists(self, entity_id: Any) -> bool:
        """Check if a row with this primary key exists."""
        return await self.get(entity_id) is not None

    async def count(self) -> int:
        """Count rows in this table."""
        async with storage_errors(f"count {self.table}"):
            async with self.pool.acquire() as conn:
                return await conn.fetchval(f"SELECT COUNT(*) FROM {self.qualified_table}")

    async def insert(
        self,
        fields: Dict[str, Any],
        performed_by: str,
        duplicate_message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Insert one row and its audit entry.

        Args:
            fields: Column values, including the primary key when it is not generated
            performed_by: Who is creating the row
            duplicate_message: Detail for DuplicateEntity on a unique violation

        Returns:
            The inserted row
        """
        columns = list(fields)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))

        async with storage_errors(f"insert {self.table}", duplicate_message=duplicate_message):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO {self.qualified_table} ({", ".join(columns)})
                        VALUES ({placeholders})
                        RETURNING *
                        """,
                        *fields.values(),
                    )
                    created = dict(row)
                    await self._write_audit(
                        conn, created[self.id_col], AuditAction.CREATED, performed_by, None, fields
                    )
                    return created

    async def update(
        self,
        entity_id: Any,
        fields: Dict[str, Any],
        performed_by: str,
        action: AuditAction = AuditAction.UPDATED,
        duplicate_message: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Update columns of one row and write its audit entry.

        Args:
            entity_id: Primary key value
            fields: Columns to overwrite
            performed_by: Who is changing the row
            action: Audit action recorded
            duplicate_message: Detail for DuplicateEntity on a unique violation

        Returns:
            The updated row, or None if no row has this key
        """
        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(fields, start=2))

        async with storage_errors(f"update {self.table}", duplicate_message=duplicate_message):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    current = await conn.fetchrow(
                        f"SELECT * FROM {self.qualified_table} WHERE {self.id_col} = $1 FOR UPDATE",
                        entity_id,
                    )
                    if current is None:
                        return None

                    row = await conn.fetchrow(
                        f"""
                        UPDATE {self.qualified_table}
                        SET {assignments}
                        WHERE {self.id_col} = $1
                        RETURNING *
                        """,
                        entity_id,
                        *fields.values(),
                    )
                    old_values = {column: current[column] for column in fields}
                    await self._write_audit(conn, entity_id, action, performed_by, old_values, fields)
                    return dict(row)

    async def delete(
        self,
        entity_id: Any,
        performed_by: str,
        in_use_message: Optional[str] = None,
    ) -> bool:
        """
        Delete one row and write its audit entry.

        Args:
            entity_id: Primary key value
            performed_by: Who is deleting the row
            in_use_message: Detail for EntityInUse when other rows still reference this one

        Returns:
            True if a row was deleted, False if none had this key
        """
        async with storage_errors(f"delete {self.table}", in_use_message=in_use_message):
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    row = await conn.fetchrow(
                        f"DELETE FROM {self.qualified_table} WHERE {self.id_col} = $1 RETURNING *",
                        entity_id,
                    )
                    if row is None:
                        return False
                    await self._write_audit(conn, entity_id, AuditAction.DELETED, performed_by, dict(row), None)
                    return True

    async def _write_audit(
        self,
        conn: asyncpg.Connection,
        entity_id: Any,
        action: AuditAction,
        performed_by: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
    ) -> None:
        """
        Write an audit trail entry.

        Runs on the caller's connection so it commits or rolls back with the main
        operation; a failure here aborts the whole write.

        Args:
            conn: Database connection (must be in transaction with main operation)
            entity_id: Primary key of the row being modified
            action: Action type (CREATED, FORWARDED, DELETED, etc.)
            performed_by: Who performed the action
            old_values: Previous values (for updates/deletes)
            new_values: New values (for creates/updates)
        """
        await conn.execute(
            f"""
            INSERT INTO {SCHEMA}.audit_trail
                (entity_type, entity_id, action, performed_by, old_values, new_values)
            VALUES ($1, $2, $3, $4, $5, $6)
            """,
            self.table,
            str(entity_id),
            action.value,
            performed_by,
            self._audit_json(old_values),
            self._audit_json(new_values),
        )

    def _audit_json(self, values: Optional[Dict[str, Any]]) -> Optional[str]:
        kept = {k: v for k, v in (values or {}).items() if k not in self.AUDIT_EXCLUDED_COLUMNS}
        if not kept:
            return None
        return json.dumps(kept, default=str)
