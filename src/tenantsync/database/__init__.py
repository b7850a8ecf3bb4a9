"""
Database integration package for tenantsync.

This package provides:
- Scoped per-target asyncpg connections
- Statement execution with timeouts and error translation
- Catalog existence probes
"""

from .connection import ConnectionConfig, open_connection
from .executor import SqlExecutor
from .introspection import SchemaIntrospector

__all__ = [
    "ConnectionConfig",
    "open_connection",
    "SqlExecutor",
    "SchemaIntrospector",
]
