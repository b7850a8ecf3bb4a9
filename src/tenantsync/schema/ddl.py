"""
DDL and DML rendering for a ``TableSpec``.

This module is the single place that turns identifiers into SQL text. All
identifiers are quoted; seed values are returned separately as bind
parameters.
"""

from typing import Any, List, Tuple

from .identifiers import quote_identifier
from .spec import ColumnSpec, TableSpec


def render_column_definition(column: ColumnSpec) -> str:
    """Render: "name" TYPE [NULL|NOT NULL] [DEFAULT ...]"""
    return f"{quote_identifier(column.name)} {column.sql_type}"


def render_create_table(spec: TableSpec) -> str:
    """CREATE TABLE with the identity primary key and every declared column."""
    lines = [f"    {render_column_definition(c)}" for c in spec.columns]
    lines.append(
        f"    CONSTRAINT {quote_identifier(spec.primary_key_name)} "
        f"PRIMARY KEY ({quote_identifier(spec.identity_column.name)})"
    )
    body = ",\n".join(lines)
    return f"CREATE TABLE {spec.full_name} (\n{body}\n)"


def render_add_column(spec: TableSpec, column: ColumnSpec) -> str:
    if column.is_identity:
        raise ValueError("The identity column is only created with the table")
    return f"ALTER TABLE {spec.full_name} ADD COLUMN {render_column_definition(column)}"


def render_not_blank_constraint(spec: TableSpec) -> str:
    """CHECK that the column is non-empty after trimming whitespace (NULL counts as blank)."""
    if spec.not_blank_column is None:
        raise ValueError(f"{spec.display_name} has no not-blank column")
    column = quote_identifier(spec.not_blank_column)
    return (
        f"ALTER TABLE {spec.full_name} "
        f"ADD CONSTRAINT {quote_identifier(spec.not_blank_constraint_name)} "
        f"CHECK (length(btrim(coalesce({column}, ''), E' \\t\\r\\n')) > 0)"
    )


def render_unique_index(spec: TableSpec) -> str:
    if spec.unique_index_column is None:
        raise ValueError(f"{spec.display_name} has no unique index column")
    return (
        f"CREATE UNIQUE INDEX IF NOT EXISTS {quote_identifier(spec.unique_index_name)} "
        f"ON {spec.full_name} ({quote_identifier(spec.unique_index_column)})"
    )


def render_hygiene_batch(spec: TableSpec) -> List[str]:
    """Statements applied right after the table is created."""
    statements = []
    if spec.not_blank_column is not None:
        statements.append(render_not_blank_constraint(spec))
    if spec.unique_index_column is not None:
        statements.append(render_unique_index(spec))
    return statements


def render_seed_insert(spec: TableSpec) -> Tuple[str, List[Any]]:
    """
    Multi-row INSERT for the spec's seed rows.

    Columns are the union of the keys used by any seed row, in declared
    order; a row that does not set a column gets DEFAULT.
    """
    if not spec.seed_rows:
        raise ValueError(f"{spec.display_name} has no seed rows")

    used = set()
    for row in spec.seed_rows:
        used.update(row.values)
    columns = [c.name for c in spec.data_columns if c.name in used]

    params: List[Any] = []
    values_sql = []
    for row in spec.seed_rows:
        placeholders = []
        for name in columns:
            if name in row.values:
                params.append(row.values[name])
                placeholders.append(f"${len(params)}")
            else:
                placeholders.append("DEFAULT")
        values_sql.append(f"({', '.join(placeholders)})")

    column_sql = ", ".join(quote_identifier(c) for c in columns)
    sql = (
        f"INSERT INTO {spec.full_name} ({column_sql})\nVALUES\n    "
        + ",\n    ".join(values_sql)
    )
    return sql, params
