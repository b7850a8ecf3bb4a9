"""
Exception classes for tenantsync.
"""

from typing import Any, Dict, Optional


class TenantSyncError(Exception):
    """Base exception for all tenantsync errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(TenantSyncError):
    """Raised when there's an error in configuration."""

    pass


class ValidationError(TenantSyncError):
    """Raised when a table specification is inconsistent."""

    pass


class DatabaseError(TenantSyncError):
    """Raised when there's an error with database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a connection cannot be established or is lost mid-operation."""

    pass


class CommandTimeoutError(DatabaseError):
    """Raised when a single statement exceeds the command timeout."""

    def __init__(
        self,
        message: str = "Statement timed out",
        timeout_duration: Optional[float] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        if timeout_duration:
            message += f" (timeout: {timeout_duration}s)"

        super().__init__(message, cause=cause)
        self.timeout_duration = timeout_duration


class SchemaError(DatabaseError):
    """Raised when a DDL or DML statement fails."""

    pass


class TargetResolutionError(DatabaseError):
    """Raised when the list of tenant databases cannot be read from the master."""

    pass


class ReconciliationCancelledError(TenantSyncError):
    """Raised when a cancellation request is observed between statements."""

    def __init__(self, message: str = "Reconciliation cancelled") -> None:
        super().__init__(message)
