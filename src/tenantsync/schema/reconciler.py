"""
Schema reconciliation core logic for tenantsync.

Brings one database in line with a ``TableSpec`` without ever removing or
altering what is already there:

1. probe whether the table exists
2. create it (with its hygiene rules) when absent
3. add any declared column that is missing
4. add the check constraint and unique index when missing
5. seed rows, only when the table is empty

Every step re-probes the live catalog, so running ``ensure`` again, or after
an interrupted run, converges on the same final state. Steps are separate
statements; they are not wrapped in one transaction.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import asyncpg

from ..database.executor import SqlExecutor
from ..database.introspection import SchemaIntrospector
from .ddl import (
    render_add_column,
    render_create_table,
    render_hygiene_batch,
    render_not_blank_constraint,
    render_seed_insert,
    render_unique_index,
)
from .spec import TableSpec


@dataclass
class TableChanges:
    """What a single ``ensure`` call changed."""

    table: str
    table_created: bool = False
    columns_added: List[str] = field(default_factory=list)
    constraints_added: List[str] = field(default_factory=list)
    indexes_added: List[str] = field(default_factory=list)
    rows_seeded: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(
            self.table_created
            or self.columns_added
            or self.constraints_added
            or self.indexes_added
            or self.rows_seeded
        )


class SchemaReconciler:
    """Idempotent create-or-upgrade of a single table on one connection."""

    def __init__(
        self,
        executor: SqlExecutor,
        logger: Optional[logging.Logger] = None,
    ):
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    async def ensure(self, conn: asyncpg.Connection, spec: TableSpec) -> TableChanges:
        """
        Make the table on ``conn`` match ``spec``.

        Raises:
            SchemaError: a statement failed
            CommandTimeoutError: a statement exceeded the command timeout
            DatabaseConnectionError: the connection was lost
            ReconciliationCancelledError: cancellation was requested
        """
        introspector = SchemaIntrospector(self.executor, conn)
        changes = TableChanges(table=spec.display_name)

        if not await introspector.table_exists(spec.full_name):
            await self._create_table(conn, spec, changes)
        else:
            await self._add_missing_columns(conn, introspector, spec, changes)

        # Tables created before the hygiene rules existed pick them up here
        await self._ensure_hygiene(conn, introspector, spec, changes)

        await self._seed_if_empty(conn, introspector, spec, changes)
        return changes

    async def _create_table(
        self, conn: asyncpg.Connection, spec: TableSpec, changes: TableChanges
    ) -> None:
        await self.executor.execute_non_query(conn, render_create_table(spec))
        changes.table_created = True
        self.logger.info(f"Table {spec.display_name} created")

        hygiene = render_hygiene_batch(spec)
        if hygiene:
            await self.executor.execute_non_query(conn, ";\n".join(hygiene))
            if spec.not_blank_constraint_name:
                changes.constraints_added.append(spec.not_blank_constraint_name)
            if spec.unique_index_name:
                changes.indexes_added.append(spec.unique_index_name)

    async def _add_missing_columns(
        self,
        conn: asyncpg.Connection,
        introspector: SchemaIntrospector,
        spec: TableSpec,
        changes: TableChanges,
    ) -> None:
        for column in spec.data_columns:
            if await introspector.column_exists(
                spec.schema_name, spec.table_name, column.name
            ):
                continue

            await self.executor.execute_non_query(conn, render_add_column(spec, column))
            changes.columns_added.append(column.name)
            self.logger.info(
                f"Column added to {spec.display_name}: {column.name} ({column.sql_type})"
            )

    async def _ensure_hygiene(
        self,
        conn: asyncpg.Connection,
        introspector: SchemaIntrospector,
        spec: TableSpec,
        changes: TableChanges,
    ) -> None:
        constraint = spec.not_blank_constraint_name
        if constraint and constraint not in changes.constraints_added:
            if not await introspector.check_constraint_exists(
                spec.schema_name, spec.table_name, constraint
            ):
                await self.executor.execute_non_query(
                    conn, render_not_blank_constraint(spec)
                )
                changes.constraints_added.append(constraint)
                self.logger.debug(f"Check constraint {constraint} added")

        index = spec.unique_index_name
        if index and index not in changes.indexes_added:
            if not await introspector.index_exists(
                spec.schema_name, spec.table_name, index
            ):
                await self.executor.execute_non_query(conn, render_unique_index(spec))
                changes.indexes_added.append(index)
                self.logger.debug(f"Unique index {index} created")

    async def _seed_if_empty(
        self,
        conn: asyncpg.Connection,
        introspector: SchemaIntrospector,
        spec: TableSpec,
        changes: TableChanges,
    ) -> None:
        if not spec.seed_rows:
            return

        # Any existing row, seeded or not, suppresses seeding for good
        if await introspector.row_count(spec.full_name) != 0:
            return

        sql, params = render_seed_insert(spec)
        inserted = await self.executor.execute_non_query(conn, sql, *params)
        changes.rows_seeded = inserted
        self.logger.info(f"{inserted} default rows seeded into {spec.display_name}")
