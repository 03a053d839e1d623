# File: tiergen/models.py
"""
tiergen - Core Data Models
==========================
Pydantic V2 models for the schema being generated from and for the
configuration threaded through every emitter call.

Schema and configuration models are frozen: emitters only ever read them.
Result models (``TableResult``, ``GenerationResult``) are mutable because the
generator fills them in while it walks the tables.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("tiergen.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ArtifactKind(str, Enum):
    """Kinds of artifact the generator can emit for a table."""

    PROCEDURES = "procedures"
    DTO = "dto"
    DAO = "dao"
    DAPPER = "dapper"
    FORM = "form"
    WEB_API = "web_api"
    ANGULAR_COMPONENT = "angular_component"
    ANGULAR_MARKUP = "angular_markup"


class ProcedureShape(str, Enum):
    """Stored-procedure shapes, in emission order."""

    SAVE = "Save"
    UPSERT = "Upsert"
    INSERT = "Insert"
    UPDATE = "Update"
    DELETE = "Delete"
    SELECT = "Select"
    SELECT_ALL = "SelectAll"
    DELETE_ALL_BY = "DeleteAllBy"
    SELECT_ALL_BY = "SelectAllBy"


# ---------------------------------------------------------------------------
# Shared model config
# ---------------------------------------------------------------------------

_SCHEMA_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)

_RESULT_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Schema primitives
# ---------------------------------------------------------------------------


class Column(BaseModel):
    """
    A single table column as read from the source database's catalog.

    ``type`` is the raw SQL Server type token (``int``, ``nvarchar``, ...).
    A ``length`` of ``-1`` means ``(max)``.
    """

    model_config = _SCHEMA_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    type: str = Field(..., min_length=1, description="SQL Server type token.")
    length: int = Field(default=0, ge=-1, description="Declared length, -1 for max.")
    precision: Optional[int] = Field(
        default=None, ge=1, description="Precision for decimal / numeric."
    )
    scale: Optional[int] = Field(
        default=None, ge=0, description="Scale for decimal / numeric."
    )
    nullable: bool = Field(default=True, description="Whether the column allows NULL.")
    is_identity: bool = Field(
        default=False,
        alias="isIdentity",
        description="Value generated by the store on insert.",
    )
    is_row_guid_col: bool = Field(
        default=False,
        alias="isRowGuidCol",
        description="Unique identifier generated with NewID() on insert.",
    )

    @field_validator("type")
    @classmethod
    def _normalise_type(cls, v: str) -> str:
        return v.strip().lower()

    @computed_field  # type: ignore[misc]
    @property
    def is_user_supplied(self) -> bool:
        """False for identity and row-guid columns."""
        return not (self.is_identity or self.is_row_guid_col)

    def __repr__(self) -> str:
        flags: str = "".join(
            [" identity" if self.is_identity else "", " rowguid" if self.is_row_guid_col else ""]
        )
        return f"<Column {self.name} {self.type}({self.length}){flags}>"


class Table(BaseModel):
    """
    One database table.

    ``columns`` order drives every generated parameter and property list.
    ``primary_keys`` lists column names in key order.  ``foreign_keys`` maps a
    group key (usually the constraint name) to the ordered column names of
    that composite foreign key.
    """

    model_config = _SCHEMA_CONFIG

    name: str = Field(..., min_length=1, description="Table name.")
    columns: List[Column] = Field(default_factory=list, description="Ordered columns.")
    primary_keys: List[str] = Field(
        default_factory=list,
        alias="primaryKeys",
        description="Primary key column names, in key order.",
    )
    foreign_keys: Dict[str, List[str]] = Field(
        default_factory=dict,
        alias="foreignKeys",
        description="Composite foreign key groups keyed by group name.",
    )

    # -- Lookups --------------------------------------------------------------

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def is_primary_key(self, column: Column) -> bool:
        return column.name in self.primary_keys

    def in_foreign_key(self, column: Column) -> bool:
        return any(column.name in names for names in self.foreign_keys.values())

    # -- Derived views -------------------------------------------------------

    @computed_field  # type: ignore[misc]
    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @computed_field  # type: ignore[misc]
    @property
    def foreign_key_column_count(self) -> int:
        """Number of distinct columns taking part in any foreign key group."""
        names: Set[str] = set()
        for group in self.foreign_keys.values():
            names.update(group)
        return len(names)

    @property
    def primary_key_columns(self) -> List[Column]:
        """Primary key columns in key order (unknown names are skipped)."""
        resolved: List[Column] = []
        for name in self.primary_keys:
            column: Optional[Column] = self.get_column(name)
            if column is not None:
                resolved.append(column)
        return resolved

    @property
    def foreign_key_groups(self) -> List[Tuple[str, List[Column]]]:
        """``(group_key, columns)`` pairs in declaration order."""
        groups: List[Tuple[str, List[Column]]] = []
        for key, names in self.foreign_keys.items():
            columns: List[Column] = [
                c for c in (self.get_column(n) for n in names) if c is not None
            ]
            groups.append((key, columns))
        return groups

    @property
    def identity_column(self) -> Optional[Column]:
        return next((c for c in self.columns if c.is_identity), None)

    @property
    def row_guid_column(self) -> Optional[Column]:
        return next((c for c in self.columns if c.is_row_guid_col), None)

    @property
    def user_columns(self) -> List[Column]:
        """Columns whose values the caller supplies on insert."""
        return [c for c in self.columns if c.is_user_supplied]

    def __repr__(self) -> str:
        return (
            f"<Table {self.name} ({len(self.columns)} cols, "
            f"{len(self.primary_keys)} PK, {len(self.foreign_keys)} FK groups)>"
        )


class SchemaDefinition(BaseModel):
    """The full set of tables to generate for, in the order supplied."""

    model_config = _SCHEMA_CONFIG

    tables: List[Table] = Field(
        ..., min_length=1, description="All tables in the schema."
    )
    source_file: Optional[str] = Field(
        default=None, description="Schema file the tables were loaded from."
    )

    @model_validator(mode="after")
    def _validate_unique_table_names(self) -> "SchemaDefinition":
        names: List[str] = [t.name for t in self.tables]
        if len(names) != len(set(names)):
            dupes: List[str] = [n for n in names if names.count(n) > 1]
            raise ValueError(f"Duplicate table names: {sorted(set(dupes))}")
        return self

    def get_table(self, name: str) -> Optional[Table]:
        return next((t for t in self.tables if t.name == name), None)

    @computed_field  # type: ignore[misc]
    @property
    def table_count(self) -> int:
        return len(self.tables)

    @computed_field  # type: ignore[misc]
    @property
    def total_columns(self) -> int:
        return sum(len(t.columns) for t in self.tables)

    @computed_field  # type: ignore[misc]
    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def __repr__(self) -> str:
        return f"<SchemaDefinition {self.table_count} tables, {self.total_columns} columns>"


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Immutable settings passed explicitly into every emitter call.

    ``create_multiple_files`` and ``grant_login_name`` only change where
    stored procedures are written and whether a grant is appended; they never
    change procedure logic.
    """

    model_config = _SCHEMA_CONFIG

    # -- Target -------------------------------------------------------------
    database_name: str = Field(..., min_length=1, description="Target database.")
    target_namespace: str = Field(
        ..., min_length=1, description="C# namespace for generated classes."
    )

    # -- Naming -------------------------------------------------------------
    stored_procedure_prefix: str = Field(
        default="", description="Prefix prepended to every procedure name."
    )
    dao_suffix: str = Field(
        default="Data", description="Suffix for data-access and front-end file names."
    )
    dto_suffix: str = Field(default="", description="Suffix for DTO class names.")

    # -- Output -------------------------------------------------------------
    output_dir: str = Field(
        default="./generated", description="Root directory for generated code."
    )
    create_multiple_files: bool = Field(
        default=True,
        description="One file per procedure instead of one shared script.",
    )
    grant_login_name: str = Field(
        default="", description="Login granted execute rights; empty disables grants."
    )
    artifacts: List[ArtifactKind] = Field(
        default_factory=lambda: list(ArtifactKind),
        min_length=1,
        description="Artifact kinds to emit.",
    )
    generate_manifest: bool = Field(
        default=True, description="Write manifest.json next to the output."
    )

    @field_validator("artifacts")
    @classmethod
    def _unique_artifacts(cls, v: List[ArtifactKind]) -> List[ArtifactKind]:
        seen: List[ArtifactKind] = []
        for kind in v:
            if kind not in seen:
                seen.append(kind)
        return seen

    @computed_field  # type: ignore[misc]
    @property
    def grants_enabled(self) -> bool:
        return bool(self.grant_login_name.strip())

    def emits(self, kind: ArtifactKind) -> bool:
        return kind in self.artifacts


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TableResult(BaseModel):
    """Outcome of generating every artifact for one table."""

    model_config = _RESULT_CONFIG

    table: str = Field(..., description="Table name.")
    success: bool = Field(default=False)
    files: List[str] = Field(
        default_factory=list, description="Relative paths written for this table."
    )
    procedures: List[str] = Field(
        default_factory=list, description="Stored procedure names emitted."
    )
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def __repr__(self) -> str:
        status: str = "OK" if self.success else "FAILED"
        return f"<TableResult {self.table} {status} {len(self.files)} files>"


class GenerationResult(BaseModel):
    """
    Per-table results of one run plus run-level files and errors.

    A failed table never aborts the batch by itself; the caller decides what
    to do with ``failed_tables``.
    """

    model_config = _RESULT_CONFIG

    tables: List[TableResult] = Field(default_factory=list)
    shared_files: List[str] = Field(
        default_factory=list,
        description="Run-level files (shared script, grants, manifest).",
    )
    errors: List[str] = Field(default_factory=list, description="Run-level errors.")
    duration_seconds: float = Field(default=0.0, ge=0.0)

    @computed_field  # type: ignore[misc]
    @property
    def succeeded_tables(self) -> List[str]:
        return [r.table for r in self.tables if r.success]

    @computed_field  # type: ignore[misc]
    @property
    def failed_tables(self) -> List[str]:
        return [r.table for r in self.tables if not r.success]

    @computed_field  # type: ignore[misc]
    @property
    def total_files(self) -> int:
        return sum(len(r.files) for r in self.tables) + len(self.shared_files)

    @computed_field  # type: ignore[misc]
    @property
    def success(self) -> bool:
        return not self.errors and all(r.success for r in self.tables)

    def get(self, table: str) -> Optional[TableResult]:
        return next((r for r in self.tables if r.table == table), None)

    def __repr__(self) -> str:
        return (
            f"<GenerationResult {len(self.succeeded_tables)} ok, "
            f"{len(self.failed_tables)} failed, {self.total_files} files>"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ArtifactKind",
    "ProcedureShape",
    "Column",
    "Table",
    "SchemaDefinition",
    "GenerationConfig",
    "TableResult",
    "GenerationResult",
]

logger.debug("tiergen.models loaded: %d public symbols.", len(__all__))
