"""
Requisition Database Connection Pool

Manages the asyncpg connection pool for the requisition database.
Automatically runs migrations on initialization.

Schema Evolution:
-----------------
When adding/removing/renaming tables in schema.sql:
1. Update the schema.sql file with new DDL
2. Update DomainDBPool.EXPECTED_TABLES constant with new table names
3. Column or constraint changes for existing deployments go in migrations.py
"""

from typing import Optional

import asyncpg
from loguru import logger

from tms_api.workflow.db.migrations import load_schema_sql
from tms_api.workflow.db.migrations import run_incremental_migrations

SCHEMA_NAME = "tms"


class DomainDBPool:
    """Requisition database connection pool manager.

    Constructed explicitly by the application factory and stored on ``app.state``;
    ``initialize()`` and ``close()`` are driven by the startup and shutdown hooks.
    """

    # Update this set when schema evolves (add/remove/rename tables)
    EXPECTED_TABLES = {
        "users",
        "drivers",
        "vehicles",
        "transport_requests",
        "audit_trail",
    }

    def __init__(
        self,
        connection_string: str,
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: float = 60.0,
    ):
        """
        Initialize domain DB pool.

        Args:
            connection_string: PostgreSQL connection string
            min_size: Minimum pooled connections
            max_size: Maximum pooled connections
            command_timeout: Per-statement timeout in seconds
        """
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """
        Initialize connection pool and run migrations.

        Creates the pool, validates it with a trivial query and creates or migrates the schema.
        """
        if self._pool_initialized and self.pool is not None:
            logger.debug("Domain DB pool already initialized")
            return

        try:
            logger.info("Initializing requisition database pool")

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.command_timeout,
                timeout=15,  # Connection timeout (15 seconds)
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            logger.info("Domain DB pool validated")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Requisition database initialized successfully")

        except (asyncpg.PostgresError, OSError, RuntimeError, FileNotFoundError) as e:
            logger.error(f"Failed to initialize domain DB pool: {e}", exc_info=True)
            if self.pool:
                await self.pool.close()
                self.pool = None
            raise

    async def _existing_tables(self, conn: asyncpg.Connection) -> set:
        rows = await conn.fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = $1
            ORDER BY table_name
            """,
            SCHEMA_NAME,
        )
        return {row["table_name"] for row in rows}

    async def _run_migrations(self) -> None:
        """
        Run database migrations.

        Creates the tms schema from schema.sql when it is absent or empty. When every
        expected table exists only the incremental migrations run. A partially present
        schema is refused rather than patched.
        """
        async with self.pool.acquire() as conn:
            schema_exists = await conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM information_schema.schemata WHERE schema_name = $1)",
                SCHEMA_NAME,
            )

            if schema_exists:
                existing_tables = await self._existing_tables(conn)

                if existing_tables == self.EXPECTED_TABLES:
                    logger.info(
                        f"Schema {SCHEMA_NAME} and all {len(existing_tables)} expected tables exist - "
                        "running incremental migrations only"
                    )
                    await run_incremental_migrations(self.pool)
                    return

                if existing_tables:
                    missing_tables = self.EXPECTED_TABLES - existing_tables
                    extra_tables = existing_tables - self.EXPECTED_TABLES
                    logger.error(
                        "Schema mismatch detected",
                        missing_tables=sorted(missing_tables),
                        extra_tables=sorted(extra_tables),
                    )
                    raise RuntimeError(
                        f"Schema mismatch: missing {sorted(missing_tables)}, extra {sorted(extra_tables)}. "
                        "Manual migration required."
                    )

                logger.warning(f"Schema {SCHEMA_NAME} exists but no tables found - running migrations")
            else:
                logger.info(f"Schema {SCHEMA_NAME} not found - running migrations")

            await conn.execute(load_schema_sql())

            existing_tables = await self._existing_tables(conn)
            if existing_tables != self.EXPECTED_TABLES:
                raise RuntimeError(
                    f"Migration incomplete: expected {sorted(self.EXPECTED_TABLES)}, found {sorted(existing_tables)}"
                )

            logger.success(f"All {len(self.EXPECTED_TABLES)} tables created in schema {SCHEMA_NAME}")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing requisition database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False
            logger.info("Domain DB pool closed")

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Returns async context manager that yields a connection.

        Usage:
            async with pool.acquire() as conn:
                result = await conn.fetchrow("SELECT * FROM ...")
        """
        if not self.pool:
            raise RuntimeError("Domain DB pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        if not self.pool:
            return False

        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Domain DB health check failed: {e}")
            return False

    async def get_table_counts(self) -> dict:
        """
        Get row counts for all tables in the tms schema.

        Returns:
            Dict mapping table names to row counts
        """
        async with self.acquire() as conn:
            counts = {}
            for table_name in sorted(await self._existing_tables(conn)):
                counts[table_name] = await conn.fetchval(f"SELECT COUNT(*) FROM {SCHEMA_NAME}.{table_name}")
            return counts
