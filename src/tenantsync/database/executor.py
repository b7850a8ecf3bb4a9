"""
Thin statement execution layer over asyncpg.

Every statement is issued with the configured command timeout, and driver
exceptions are translated into the tenantsync error taxonomy:

- statement timeouts become ``CommandTimeoutError``
- lost or unusable connections become ``DatabaseConnectionError``
- any other server-side failure becomes ``SchemaError``

A cancellation event, when supplied, is checked before every statement.
"""

import asyncio
import logging
from typing import Any, List, Optional

import asyncpg

from ..exceptions import (
    CommandTimeoutError,
    DatabaseConnectionError,
    ReconciliationCancelledError,
    SchemaError,
)


logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 60.0


def parse_row_count(status: Optional[str]) -> int:
    """
    Extract the affected row count from an asyncpg status tag.

    ``"INSERT 0 2"`` -> 2, ``"UPDATE 3"`` -> 3, ``"CREATE TABLE"`` -> 0.
    """
    if not status:
        return 0
    last = status.rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else 0


class SqlExecutor:
    """Executes scalar and non-query statements with a bounded timeout."""

    def __init__(
        self,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        if command_timeout <= 0:
            raise ValueError("command_timeout must be positive")
        self.command_timeout = command_timeout
        self.cancel_event = cancel_event

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ReconciliationCancelledError()

    async def execute_scalar_int(
        self, conn: asyncpg.Connection, sql: str, *params: Any
    ) -> int:
        """Run a query returning one value; NULL or no row yields 0."""
        value = await self._run(conn.fetchval, sql, *params)
        return 0 if value is None else int(value)

    async def execute_non_query(
        self, conn: asyncpg.Connection, sql: str, *params: Any
    ) -> int:
        """Run a statement and return the number of affected rows."""
        status = await self._run(conn.execute, sql, *params)
        return parse_row_count(status)

    async def fetch_strings(
        self, conn: asyncpg.Connection, sql: str, column: str
    ) -> List[Optional[str]]:
        """Run a query and return one column of every row as strings."""
        rows = await self._run(conn.fetch, sql)
        values = []
        for row in rows:
            try:
                value = row[column]
            except KeyError as e:
                raise SchemaError(
                    f"Query result has no column '{column}'", {"sql": sql}
                ) from e
            values.append(None if value is None else str(value))
        return values

    async def _run(self, method, sql: str, *params: Any) -> Any:
        self.check_cancelled()
        logger.debug(f"Executing: {sql.strip()}")
        try:
            return await method(sql, *params, timeout=self.command_timeout)
        except (asyncio.TimeoutError, asyncpg.QueryCanceledError) as e:
            raise CommandTimeoutError(
                "Statement exceeded the command timeout",
                timeout_duration=self.command_timeout,
                cause=e,
            ) from e
        except (
            asyncpg.PostgresConnectionError,
            asyncpg.ConnectionDoesNotExistError,
            asyncpg.InterfaceError,
            OSError,
        ) as e:
            raise DatabaseConnectionError(f"Connection failure: {e}", cause=e) from e
        except asyncpg.PostgresError as e:
            raise SchemaError(
                f"Statement failed: {e}",
                {"sqlstate": getattr(e, "sqlstate", None)},
                cause=e,
            ) from e
