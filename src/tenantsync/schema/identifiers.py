"""
SQL identifier allow-listing and quoting.

Identifiers (schema, table, column, constraint and index names) are treated as
trusted configuration: they are validated against a strict pattern when a
``TableSpec`` or the configuration is built, and only then rendered into DDL
text. Values are never rendered; they are always bound as parameters.
"""

import re

# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes.
MAX_IDENTIFIER_LENGTH = 63

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_valid_identifier(name: str) -> bool:
    """Check that a name is a plain, unquoted-safe identifier."""
    if not isinstance(name, str):
        return False
    return bool(_IDENTIFIER_RE.match(name)) and len(name) <= MAX_IDENTIFIER_LENGTH


def quote_identifier(name: str) -> str:
    """Return ``"name"``; rejects anything outside the allow-list."""
    if not is_valid_identifier(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


def qualified_name(schema: str, table: str) -> str:
    """Return the quoted ``"schema"."table"`` form."""
    return f"{quote_identifier(schema)}.{quote_identifier(table)}"
