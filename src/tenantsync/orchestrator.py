"""
Fan-out of schema reconciliation over the master or all tenant databases.

Failures are isolated per target: a database that cannot be reached or
rejects a statement is recorded as failed and the batch moves on. Only a
missing master connection string or a failure to list the tenants aborts
the run.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncContextManager, Callable, Dict, List, Optional

import asyncpg

from .config import TenantSyncConfig
from .database.connection import database_name, open_connection
from .database.executor import SqlExecutor
from .directory import TargetDirectory
from .exceptions import ReconciliationCancelledError, TenantSyncError
from .schema.reconciler import SchemaReconciler, TableChanges
from .schema.spec import TableSpec, applicant_types_spec


INVALID_TARGET_NAME = "<invalid>"

ConnectionFactory = Callable[..., AsyncContextManager[asyncpg.Connection]]


class BuildMode(str, Enum):
    """Which databases a run targets."""

    MASTER = "master"
    TENANTS = "tenants"


class ReconciliationStatus(str, Enum):
    """Outcome of reconciling one target."""

    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ReconciliationResult:
    """Per-target outcome."""

    target: str
    status: ReconciliationStatus
    error: Optional[str] = None
    error_type: Optional[str] = None
    changes: Optional[TableChanges] = None
    execution_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == ReconciliationStatus.SUCCESS


@dataclass
class BatchResult:
    """Results of one run, one entry per attempted target, in target order."""

    mode: BuildMode
    results: List[ReconciliationResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.status == ReconciliationStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == ReconciliationStatus.FAILED)

    @property
    def cancelled(self) -> int:
        return sum(1 for r in self.results if r.status == ReconciliationStatus.CANCELLED)

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.results)

    def summary(self) -> Dict[str, Any]:
        total = len(self.results)
        return {
            "mode": self.mode.value,
            "total_targets": total,
            "successful": self.succeeded,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "success_rate": self.succeeded / total if total > 0 else 0,
            "failed_targets": [
                r.target for r in self.results
                if r.status == ReconciliationStatus.FAILED
            ],
        }


class Orchestrator:
    """
    Resolves targets and runs the schema reconciler against each one.

    Targets run sequentially unless ``config.max_concurrency`` is above one.
    Setting ``cancel_event`` stops the target in flight before its next
    statement (recorded as cancelled) and prevents new targets from starting.
    """

    def __init__(
        self,
        config: TenantSyncConfig,
        spec: Optional[TableSpec] = None,
        executor: Optional[SqlExecutor] = None,
        reconciler: Optional[SchemaReconciler] = None,
        directory: Optional[TargetDirectory] = None,
        connection_factory: ConnectionFactory = open_connection,
        cancel_event: Optional[asyncio.Event] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.spec = spec or applicant_types_spec(config.schema_name, config.table_name)
        self.cancel_event = cancel_event
        self.executor = executor or SqlExecutor(config.command_timeout, cancel_event)
        self.logger = logger or logging.getLogger(__name__)
        self.reconciler = reconciler or SchemaReconciler(self.executor, self.logger)
        self.directory = directory
        self.connection_factory = connection_factory

    async def build_master(self) -> BatchResult:
        return await self.reconcile_all(BuildMode.MASTER)

    async def build_tenants(self) -> BatchResult:
        return await self.reconcile_all(BuildMode.TENANTS)

    async def reconcile_all(self, mode: BuildMode) -> BatchResult:
        """
        Reconcile every target for ``mode``.

        Raises:
            ConfigurationError: the master connection string is missing
            TargetResolutionError: tenant connection strings could not be read
        """
        mode = BuildMode(mode)
        master = self.config.require_master_connection_string()
        targets = await self._resolve_targets(mode, master)

        self.logger.info(
            f"Reconciling {self.spec.display_name} on {len(targets)} "
            f"{mode.value} database(s)"
        )

        batch = BatchResult(mode=mode)
        if self.config.max_concurrency > 1 and len(targets) > 1:
            batch.results = await self._run_concurrently(targets)
        else:
            batch.results = await self._run_sequentially(targets)

        self.logger.info(
            f"Finished {mode.value} run: {batch.succeeded} succeeded, "
            f"{batch.failed} failed, {batch.cancelled} cancelled"
        )
        return batch

    async def _resolve_targets(self, mode: BuildMode, master: str) -> List[str]:
        if mode == BuildMode.MASTER:
            return [master]

        directory = self.directory or TargetDirectory(
            master,
            self.executor,
            query=self.config.tenants_query,
            column=self.config.tenants_column,
            connect_timeout=self.config.connect_timeout,
        )
        return await directory.list_connection_strings()

    def _cancel_requested(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def _run_sequentially(self, targets: List[str]) -> List[ReconciliationResult]:
        results = []
        for connection_string in targets:
            if self._cancel_requested():
                self.logger.warning("Cancellation requested; remaining targets skipped")
                break

            result = await self._reconcile_target(connection_string)
            results.append(result)
            if result.status == ReconciliationStatus.CANCELLED:
                break
        return results

    async def _run_concurrently(self, targets: List[str]) -> List[ReconciliationResult]:
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def run(connection_string: str) -> Optional[ReconciliationResult]:
            async with semaphore:
                if self._cancel_requested():
                    return None
                return await self._reconcile_target(connection_string)

        results = await asyncio.gather(*(run(t) for t in targets))
        return [r for r in results if r is not None]

    async def _reconcile_target(self, connection_string: str) -> ReconciliationResult:
        start_time = time.monotonic()
        name = INVALID_TARGET_NAME

        def elapsed_ms() -> float:
            return (time.monotonic() - start_time) * 1000

        try:
            name = database_name(connection_string)
            async with self.connection_factory(
                connection_string,
                connect_timeout=self.config.connect_timeout,
                command_timeout=self.config.command_timeout,
            ) as conn:
                changes = await self.reconciler.ensure(conn, self.spec)

            self.logger.info(f"{self.spec.display_name} processed (DB: {name})")
            return ReconciliationResult(
                target=name,
                status=ReconciliationStatus.SUCCESS,
                changes=changes,
                execution_time_ms=elapsed_ms(),
            )

        except ReconciliationCancelledError as e:
            self.logger.warning(f"Reconciliation cancelled (DB: {name})")
            return ReconciliationResult(
                target=name,
                status=ReconciliationStatus.CANCELLED,
                error=str(e),
                error_type=type(e).__name__,
                execution_time_ms=elapsed_ms(),
            )

        except TenantSyncError as e:
            self.logger.error(f"Error processing DB {name}: {e}")
            return self._failed(name, e, elapsed_ms())

        except Exception as e:
            self.logger.exception(f"Unexpected error processing DB {name}: {e}")
            return self._failed(name, e, elapsed_ms())

    @staticmethod
    def _failed(name: str, error: Exception, elapsed: float) -> ReconciliationResult:
        return ReconciliationResult(
            target=name,
            status=ReconciliationStatus.FAILED,
            error=str(error),
            error_type=type(error).__name__,
            execution_time_ms=elapsed,
        )
