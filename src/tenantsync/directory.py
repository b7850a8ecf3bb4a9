"""
Tenant discovery: reads tenant connection strings from the master database.
"""

import asyncio
import logging
from typing import List

from .database.connection import open_connection
from .database.executor import SqlExecutor
from .exceptions import (
    ReconciliationCancelledError,
    TargetResolutionError,
    TenantSyncError,
)


logger = logging.getLogger(__name__)


class TargetDirectory:
    """Lists the connection strings of every tenant database."""

    def __init__(
        self,
        master_connection_string: str,
        executor: SqlExecutor,
        query: str = "SELECT connection_string FROM public.tenants",
        column: str = "connection_string",
        connect_timeout: float = 30.0,
    ):
        self.master_connection_string = master_connection_string
        self.executor = executor
        self.query = query
        self.column = column
        self.connect_timeout = connect_timeout

    async def list_connection_strings(self) -> List[str]:
        """
        Run the tenants query against the master.

        Blank and NULL values are dropped. Any failure is fatal for the
        caller and surfaces as ``TargetResolutionError``.
        """
        try:
            async with open_connection(
                self.master_connection_string,
                connect_timeout=self.connect_timeout,
            ) as conn:
                values = await self.executor.fetch_strings(conn, self.query, self.column)
        except (asyncio.CancelledError, ReconciliationCancelledError):
            raise
        except TenantSyncError as e:
            raise TargetResolutionError(
                f"Failed to list tenant databases: {e.message}", e.details, cause=e
            ) from e
        except Exception as e:
            raise TargetResolutionError(
                f"Failed to list tenant databases: {e}", cause=e
            ) from e

        targets = [v.strip() for v in values if v is not None and v.strip()]
        skipped = len(values) - len(targets)
        if skipped:
            logger.warning(f"Skipped {skipped} blank tenant connection string(s)")
        logger.info(f"Found {len(targets)} tenant database(s)")
        return targets
