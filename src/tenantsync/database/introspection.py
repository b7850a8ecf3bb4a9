"""
Catalog probes used by the schema reconciler.

Every lookup binds schema, table and object names as parameters; nothing
here renders identifiers into SQL except the row count, which uses the
already-validated, quoted table name.
"""

import logging

import asyncpg

from .executor import SqlExecutor


logger = logging.getLogger(__name__)


TABLE_EXISTS_SQL = """
    SELECT CASE WHEN to_regclass($1) IS NULL THEN 0 ELSE 1 END
"""

COLUMN_EXISTS_SQL = """
    SELECT CASE WHEN EXISTS (
        SELECT 1 FROM information_schema.columns
        WHERE table_schema = $1 AND table_name = $2 AND column_name = $3
    ) THEN 1 ELSE 0 END
"""

CHECK_CONSTRAINT_EXISTS_SQL = """
    SELECT CASE WHEN EXISTS (
        SELECT 1
        FROM pg_constraint con
        JOIN pg_class rel ON rel.oid = con.conrelid
        JOIN pg_namespace nsp ON nsp.oid = rel.relnamespace
        WHERE con.contype = 'c'
        AND nsp.nspname = $1 AND rel.relname = $2 AND con.conname = $3
    ) THEN 1 ELSE 0 END
"""

INDEX_EXISTS_SQL = """
    SELECT CASE WHEN EXISTS (
        SELECT 1 FROM pg_indexes
        WHERE schemaname = $1 AND tablename = $2 AND indexname = $3
    ) THEN 1 ELSE 0 END
"""


class SchemaIntrospector:
    """Existence checks against one connection."""

    def __init__(self, executor: SqlExecutor, conn: asyncpg.Connection):
        self.executor = executor
        self.conn = conn

    async def table_exists(self, qualified: str) -> bool:
        """``qualified`` is the quoted ``"schema"."table"`` passed to ``to_regclass``."""
        result = await self.executor.execute_scalar_int(
            self.conn, TABLE_EXISTS_SQL, qualified
        )
        return result == 1

    async def column_exists(self, schema: str, table: str, column: str) -> bool:
        result = await self.executor.execute_scalar_int(
            self.conn, COLUMN_EXISTS_SQL, schema, table, column
        )
        return result == 1

    async def check_constraint_exists(self, schema: str, table: str, name: str) -> bool:
        result = await self.executor.execute_scalar_int(
            self.conn, CHECK_CONSTRAINT_EXISTS_SQL, schema, table, name
        )
        return result == 1

    async def index_exists(self, schema: str, table: str, name: str) -> bool:
        result = await self.executor.execute_scalar_int(
            self.conn, INDEX_EXISTS_SQL, schema, table, name
        )
        return result == 1

    async def row_count(self, qualified: str) -> int:
        return await self.executor.execute_scalar_int(
            self.conn, f"SELECT count(*) FROM {qualified}"
        )
