"""
Declarative description of the table tenantsync provisions.

A ``TableSpec`` says what the table should look like: its columns, optional
hygiene rules (a not-blank check constraint and a unique index) and the rows
to seed into a freshly empty table. Specs are immutable and validated on
construction so the rest of the engine can render DDL from them directly.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import ValidationError
from .identifiers import MAX_IDENTIFIER_LENGTH, is_valid_identifier, qualified_name


@dataclass(frozen=True)
class ColumnSpec:
    """A single column: name, type expression (type, nullability, default)."""

    name: str
    sql_type: str
    is_identity: bool = False

    def __str__(self) -> str:
        return f"{self.name} {self.sql_type}"


@dataclass(frozen=True)
class SeedRow:
    """Column name to literal value mapping for one seed row."""

    values: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @classmethod
    def of(cls, **values: Any) -> "SeedRow":
        return cls(values)


@dataclass(frozen=True)
class TableSpec:
    """Expected shape of a table."""

    schema_name: str
    table_name: str
    columns: Tuple[ColumnSpec, ...]
    not_blank_column: Optional[str] = None
    unique_index_column: Optional[str] = None
    seed_rows: Tuple[SeedRow, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "seed_rows", tuple(self.seed_rows))
        self._validate()

    def _validate(self) -> None:
        for name in (self.schema_name, self.table_name):
            if not is_valid_identifier(name):
                raise ValidationError(f"Invalid identifier: {name!r}")

        if not self.columns:
            raise ValidationError(f"Table {self.table_name} declares no columns")

        names = [c.name for c in self.columns]
        for name in names:
            if not is_valid_identifier(name):
                raise ValidationError(f"Invalid column name: {name!r}")
        if len(set(names)) != len(names):
            raise ValidationError(
                f"Duplicate column names in {self.table_name}", {"columns": names}
            )

        identity = [c.name for c in self.columns if c.is_identity]
        if len(identity) != 1:
            raise ValidationError(
                f"Table {self.table_name} must declare exactly one identity column",
                {"identity_columns": identity},
            )

        for option in ("not_blank_column", "unique_index_column"):
            column = getattr(self, option)
            if column is not None and column not in names:
                raise ValidationError(
                    f"{option} refers to undeclared column {column!r}"
                )

        derived = [self.primary_key_name]
        if self.not_blank_constraint_name:
            derived.append(self.not_blank_constraint_name)
        if self.unique_index_name:
            derived.append(self.unique_index_name)
        for name in derived:
            if len(name) > MAX_IDENTIFIER_LENGTH:
                raise ValidationError(
                    f"Derived object name {name!r} exceeds {MAX_IDENTIFIER_LENGTH} characters"
                )

        insertable = {c.name for c in self.data_columns}
        for row in self.seed_rows:
            unknown = set(row.values) - insertable
            if unknown:
                raise ValidationError(
                    f"Seed row references unknown or identity columns: {sorted(unknown)}"
                )
            if not row.values:
                raise ValidationError("Seed rows must set at least one column")

    @property
    def full_name(self) -> str:
        """Quoted ``"schema"."table"``."""
        return qualified_name(self.schema_name, self.table_name)

    @property
    def display_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"

    @property
    def identity_column(self) -> ColumnSpec:
        return next(c for c in self.columns if c.is_identity)

    @property
    def data_columns(self) -> Tuple[ColumnSpec, ...]:
        """Columns that may be added to an existing table (everything but the identity)."""
        return tuple(c for c in self.columns if not c.is_identity)

    @property
    def primary_key_name(self) -> str:
        return f"pk_{self.table_name}"

    @property
    def not_blank_constraint_name(self) -> Optional[str]:
        if self.not_blank_column is None:
            return None
        return f"ck_{self.table_name}_{self.not_blank_column}_not_blank"

    @property
    def unique_index_name(self) -> Optional[str]:
        if self.unique_index_column is None:
            return None
        return f"ux_{self.table_name}_{self.unique_index_column}"

    def describe(self) -> Dict[str, Any]:
        """Plain-data view used by the CLI."""
        return {
            "table": self.display_name,
            "columns": [
                {"name": c.name, "type": c.sql_type, "identity": c.is_identity}
                for c in self.columns
            ],
            "check_constraint": self.not_blank_constraint_name,
            "unique_index": self.unique_index_name,
            "seed_rows": [dict(r.values) for r in self.seed_rows],
        }


def applicant_types_spec(
    schema_name: str = "public",
    table_name: str = "applicant_types",
) -> TableSpec:
    """The built-in applicant types table."""
    return TableSpec(
        schema_name=schema_name,
        table_name=table_name,
        columns=(
            ColumnSpec("id", "BIGINT GENERATED BY DEFAULT AS IDENTITY NOT NULL", is_identity=True),
            ColumnSpec("active", "BOOLEAN NULL DEFAULT TRUE"),
            ColumnSpec("created_at", "TIMESTAMPTZ NULL DEFAULT now()"),
            ColumnSpec("created_by", "VARCHAR(255) NULL"),
            ColumnSpec("name", "VARCHAR(200) NULL"),
        ),
        not_blank_column="name",
        unique_index_column="name",
        seed_rows=(
            SeedRow.of(active=True, created_by="System", name="Vendor"),
            SeedRow.of(active=True, created_by="System", name="Employee"),
        ),
    )
