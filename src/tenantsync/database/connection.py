"""
Database connection handling for tenantsync.

Each reconciliation target gets its own short-lived asyncpg connection,
opened and closed around the work done against it. No connection is ever
shared between targets.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import parse_qs, urlparse

import asyncpg
from pydantic import BaseModel, Field, field_validator

from ..exceptions import ConfigurationError, DatabaseConnectionError


logger = logging.getLogger(__name__)


class ConnectionConfig(BaseModel):
    """Parsed view of a PostgreSQL connection string."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field("", description="Database user")
    password: str = Field("", description="Database password")
    ssl_mode: Optional[str] = Field(None, description="SSL mode")

    @field_validator("database")
    @classmethod
    def validate_database(cls, v):
        if not v or not v.strip():
            raise ValueError("Database name is required")
        return v

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        """Create configuration from database URL."""
        if not url or not url.strip():
            raise ConfigurationError("Connection string is empty")

        parsed = urlparse(url.strip())

        if parsed.scheme not in ("postgresql", "postgres"):
            raise ConfigurationError(f"Invalid database URL scheme: {parsed.scheme!r}")

        if not parsed.path or parsed.path == "/":
            raise ConfigurationError("Database name is required")

        query_params = parse_qs(parsed.query) if parsed.query else {}

        try:
            port = parsed.port or 5432
        except ValueError as e:
            raise ConfigurationError(f"Invalid port in connection string: {e}") from e

        return cls(
            host=parsed.hostname or "localhost",
            port=port,
            database=parsed.path.lstrip("/"),
            user=parsed.username or "",
            password=parsed.password or "",
            ssl_mode=query_params["sslmode"][0] if "sslmode" in query_params else None,
        )

    @property
    def display_name(self) -> str:
        """The catalog name, used to label a target in logs and results."""
        return self.database

    def redacted_url(self) -> str:
        """URL form with the password masked, safe to log."""
        credentials = f"{self.user}:***@" if self.user else ""
        return f"postgresql://{credentials}{self.host}:{self.port}/{self.database}"


def database_name(connection_string: str) -> str:
    """Derive the display name of a target from its connection string."""
    return ConnectionConfig.from_url(connection_string).display_name


@asynccontextmanager
async def open_connection(
    connection_string: str,
    connect_timeout: float = 30.0,
    command_timeout: Optional[float] = None,
) -> AsyncIterator[asyncpg.Connection]:
    """Open a dedicated connection and always close it on exit."""
    try:
        connection = await asyncpg.connect(
            dsn=connection_string,
            timeout=connect_timeout,
            command_timeout=command_timeout,
        )
    except asyncio.CancelledError:
        raise
    except (
        OSError,
        ValueError,
        asyncio.TimeoutError,
        asyncpg.PostgresError,
        asyncpg.InterfaceError,
    ) as e:
        raise DatabaseConnectionError(f"Failed to connect: {e}", cause=e) from e

    try:
        yield connection
    finally:
        try:
            await connection.close(timeout=connect_timeout)
        except Exception as e:
            logger.warning(f"Error closing connection, terminating it: {e}")
            connection.terminate()
