# File: tiergen/validators.py
"""
tiergen - Schema & Configuration Validators
===========================================
Pydantic handles structural correctness of the input (types, required
fields, unknown keys).  This module adds the semantic checks the emitters
rely on: every key column exists, every type token is mapped, at most one
server-generated column per table, and identifiers that survive the trip
into C#, T-SQL and TypeScript.

Checks accumulate into a ``ValidationResult`` instead of raising, so a
single run can report every problem in the schema at once.  The generator
turns a table's errors into ``SchemaInvariantViolation``.

Usage:
    from tiergen.validators import validate_full
    result = validate_full(schema, config)
    if not result:
        print(result.format_report())
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Set

from tiergen import typemap
from tiergen.models import GenerationConfig, SchemaDefinition, Table
from tiergen.utils import pascal_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("tiergen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# Names become @variables in T-SQL and bare identifiers in C#/TS
_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_NAMESPACE_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_SUFFIX_RE: re.Pattern[str] = re.compile(r"^[A-Za-z0-9_]*$")
_LOGIN_RE: re.Pattern[str] = re.compile(r"^[^\[\]']*$")

# Column names that collide with members of the generated classes
_RESERVED_PROPERTY_NAMES: Set[str] = {"Equals", "GetHashCode", "GetType", "ToString"}


# ---------------------------------------------------------------------------
# Per-table checks
# ---------------------------------------------------------------------------


def validate_table_structure(table: Table) -> ValidationResult:
    """
    Column-level checks for a single table:
    - at least one column
    - valid, unique column names (also unique once pascal-cased)
    - every type token recognised
    """
    result: ValidationResult = ValidationResult()
    ctx: Dict[str, Any] = {"table": table.name}

    if not _IDENTIFIER_RE.match(table.name):
        result.add_error(
            "INVALID_TABLE_NAME",
            f"Table name '{table.name}' cannot be turned into an identifier.",
            ctx,
        )

    if not table.columns:
        result.add_error(
            "ZERO_COLUMNS",
            f"Table '{table.name}' has no columns.",
            ctx,
        )
        return result

    seen: Set[str] = set()
    properties: Dict[str, str] = {}
    for column in table.columns:
        col_ctx: Dict[str, Any] = {"table": table.name, "column": column.name}

        if column.name in seen:
            result.add_error(
                "DUPLICATE_COLUMN_NAME",
                f"Column '{column.name}' is duplicated in table '{table.name}'.",
                col_ctx,
            )
        seen.add(column.name)

        if not _IDENTIFIER_RE.match(column.name):
            result.add_error(
                "INVALID_COLUMN_NAME",
                f"Column '{column.name}' in table '{table.name}' "
                f"cannot be turned into an identifier.",
                col_ctx,
            )
        else:
            prop: str = pascal_name(column.name)
            other: Optional[str] = properties.get(prop)
            if other is not None and other != column.name:
                result.add_error(
                    "PROPERTY_NAME_COLLISION",
                    f"Columns '{other}' and '{column.name}' in table "
                    f"'{table.name}' both map to property '{prop}'.",
                    col_ctx,
                )
            properties.setdefault(prop, column.name)
            if prop in _RESERVED_PROPERTY_NAMES:
                result.add_warning(
                    "PROPERTY_NAME_RESERVED",
                    f"Column '{column.name}' maps to '{prop}', which hides "
                    f"an inherited member.",
                    col_ctx,
                )

        if not typemap.is_recognized(column.type):
            result.add_error(
                "UNRECOGNIZED_TYPE",
                f"Column '{column.name}' in table '{table.name}' has "
                f"unrecognized type '{column.type}'.",
                {**col_ctx, "type": column.type},
            )

    return result


def validate_table_keys(table: Table) -> ValidationResult:
    """
    Key checks for a single table:
    - primary key columns exist and are listed once
    - foreign key groups are non-empty and reference existing columns
    """
    result: ValidationResult = ValidationResult()
    names: Set[str] = set(table.column_names)

    if not table.primary_keys:
        result.add_warning(
            "MISSING_PRIMARY_KEY",
            f"Table '{table.name}' has no primary key. Update, Delete, "
            f"Select and SelectAll are not generated.",
            {"table": table.name},
        )

    listed: Set[str] = set()
    for pk in table.primary_keys:
        if pk in listed:
            result.add_error(
                "DUPLICATE_PK_COLUMN",
                f"Primary key column '{pk}' is listed twice for table '{table.name}'.",
                {"table": table.name, "pk_column": pk},
            )
        listed.add(pk)
        if pk not in names:
            result.add_error(
                "PK_COLUMN_NOT_FOUND",
                f"Primary key column '{pk}' declared for table "
                f"'{table.name}' does not exist in columns list.",
                {"table": table.name, "pk_column": pk},
            )

    for key, group in table.foreign_keys.items():
        if not group:
            result.add_error(
                "EMPTY_FK_GROUP",
                f"Foreign key group '{key}' of table '{table.name}' lists no columns.",
                {"table": table.name, "fk_group": key},
            )
            continue
        for column in group:
            if column not in names:
                result.add_error(
                    "FK_COLUMN_NOT_FOUND",
                    f"Foreign key group '{key}' of table '{table.name}' "
                    f"references missing column '{column}'.",
                    {"table": table.name, "fk_group": key, "fk_column": column},
                )

    return result


def validate_generated_columns(table: Table) -> ValidationResult:
    """
    At most one server-generated column per table: a single identity or a
    single row-guid column, never both.
    """
    result: ValidationResult = ValidationResult()
    identities: List[str] = [c.name for c in table.columns if c.is_identity]
    row_guids: List[str] = [c.name for c in table.columns if c.is_row_guid_col]
    ctx: Dict[str, Any] = {"table": table.name}

    if len(identities) > 1:
        result.add_error(
            "MULTIPLE_IDENTITY_COLUMNS",
            f"Table '{table.name}' has {len(identities)} identity columns: "
            f"{', '.join(identities)}.",
            {**ctx, "columns": identities},
        )
    if len(row_guids) > 1:
        result.add_error(
            "MULTIPLE_ROWGUID_COLUMNS",
            f"Table '{table.name}' has {len(row_guids)} row-guid columns: "
            f"{', '.join(row_guids)}.",
            {**ctx, "columns": row_guids},
        )
    if identities and row_guids:
        result.add_error(
            "IDENTITY_AND_ROWGUID",
            f"Table '{table.name}' has both an identity column and a "
            f"row-guid column.",
            ctx,
        )
    for column in table.columns:
        if column.is_identity and column.is_row_guid_col:
            result.add_error(
                "IDENTITY_ROWGUID_SAME_COLUMN",
                f"Column '{column.name}' in table '{table.name}' is marked "
                f"both identity and row-guid.",
                {**ctx, "column": column.name},
            )

    return result


def validate_table(table: Table) -> ValidationResult:
    """All per-table checks, merged."""
    result: ValidationResult = ValidationResult()
    checks: List[Callable[[Table], ValidationResult]] = [
        validate_table_structure,
        validate_table_keys,
        validate_generated_columns,
    ]
    for check in checks:
        result.merge(check(table))
    logger.debug("validate_table(%s): %s", table.name, result.summary())
    return result


# ---------------------------------------------------------------------------
# Schema-level checks
# ---------------------------------------------------------------------------


def validate_class_names(schema: SchemaDefinition) -> ValidationResult:
    """Two tables must not produce the same generated class name."""
    result: ValidationResult = ValidationResult()
    seen: Dict[str, str] = {}
    for table in schema.tables:
        cls: str = pascal_name(table.name)
        other: Optional[str] = seen.get(cls)
        if other is not None:
            result.add_error(
                "CLASS_NAME_COLLISION",
                f"Tables '{other}' and '{table.name}' both map to class '{cls}'.",
                {"table": table.name, "class_name": cls},
            )
        else:
            seen[cls] = table.name
    return result


def validate_schema(schema: SchemaDefinition) -> ValidationResult:
    """
    Run every per-table check plus cross-table checks.

    Complexity: O(T + C) in tables and columns.
    """
    result: ValidationResult = ValidationResult()
    for table in schema.tables:
        result.merge(validate_table(table))
    result.merge(validate_class_names(schema))

    result.add_info(
        "SCHEMA_STATS",
        f"Schema: {schema.table_count} tables, {schema.total_columns} columns.",
        {"tables": schema.table_count, "columns": schema.total_columns},
    )
    logger.info("Schema validation complete: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Configuration checks
# ---------------------------------------------------------------------------


def validate_config(config: GenerationConfig) -> ValidationResult:
    """Semantic checks on ``GenerationConfig`` beyond its field constraints."""
    result: ValidationResult = ValidationResult()

    if not _NAMESPACE_RE.match(config.target_namespace):
        result.add_error(
            "INVALID_NAMESPACE",
            f"Namespace '{config.target_namespace}' is not a valid C# namespace.",
            {"namespace": config.target_namespace},
        )

    for field_name in ("stored_procedure_prefix", "dao_suffix", "dto_suffix"):
        value: str = getattr(config, field_name)
        if not _SUFFIX_RE.match(value):
            result.add_error(
                "INVALID_NAME_AFFIX",
                f"{field_name} '{value}' may only contain letters, digits and underscores.",
                {field_name: value},
            )

    if config.dao_suffix == config.dto_suffix:
        result.add_error(
            "DAO_DTO_SUFFIX_CLASH",
            f"dao_suffix and dto_suffix are both '{config.dao_suffix}'; the "
            f"data-access and data-transfer classes will share a name.",
            {"suffix": config.dao_suffix},
        )

    if "]" in config.database_name:
        result.add_error(
            "INVALID_DATABASE_NAME",
            f"Database name '{config.database_name}' cannot be bracket-quoted.",
            {"database_name": config.database_name},
        )

    if config.grants_enabled and not _LOGIN_RE.match(config.grant_login_name):
        result.add_error(
            "INVALID_GRANT_LOGIN",
            f"Grant login '{config.grant_login_name}' contains brackets or quotes.",
            {"grant_login_name": config.grant_login_name},
        )

    if not config.output_dir:
        result.add_error("EMPTY_OUTPUT_DIR", "output_dir must not be empty.")

    logger.info("Config validation complete: %s", result.summary())
    return result


def validate_full(schema: SchemaDefinition, config: GenerationConfig) -> ValidationResult:
    """
    **Master validation entry point** used by the CLI before generating.
    """
    logger.info("Starting full validation: %d tables", schema.table_count)

    result: ValidationResult = ValidationResult()
    result.merge(validate_schema(schema))
    result.merge(validate_config(config))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())
    return result


__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "validate_table_structure",
    "validate_table_keys",
    "validate_generated_columns",
    "validate_table",
    "validate_class_names",
    "validate_schema",
    "validate_config",
    "validate_full",
]
