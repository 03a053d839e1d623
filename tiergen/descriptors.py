# File: tiergen/descriptors.py
"""
tiergen - Resolved Field Descriptors
====================================
Every artifact for a table is rendered from one ``EntityDescriptor`` built
once by ``describe_table``.  Names and types are resolved here and nowhere
else, so the DTO property, the DAO binding, the Angular form control and the
HTML binding for a column are guaranteed to be spelled the same way.

Resolution fails with ``UnrecognizedType`` before any text is rendered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Tuple

from tiergen import typemap
from tiergen.models import Column, GenerationConfig, Table
from tiergen.utils import camel_name, class_name, pascal_name, variable_name

logger: logging.Logger = logging.getLogger("tiergen.descriptors")

# C# keywords that need an @ prefix when used as a parameter or local name
_CS_KEYWORDS: FrozenSet[str] = frozenset({
    "abstract", "as", "base", "bool", "break", "byte", "case", "catch",
    "char", "checked", "class", "const", "continue", "decimal", "default",
    "delegate", "do", "double", "else", "enum", "event", "explicit",
    "extern", "false", "finally", "fixed", "float", "for", "foreach",
    "goto", "if", "implicit", "in", "int", "interface", "internal", "is",
    "lock", "long", "namespace", "new", "null", "object", "operator",
    "out", "override", "params", "private", "protected", "public",
    "readonly", "ref", "return", "sbyte", "sealed", "short", "sizeof",
    "stackalloc", "static", "string", "struct", "switch", "this", "throw",
    "true", "try", "typeof", "uint", "ulong", "unchecked", "unsafe",
    "ushort", "using", "virtual", "void", "volatile", "while",
})


def cs_local_name(name: str) -> str:
    """camelCase C# local/parameter name, escaped when it is a keyword."""
    local: str = camel_name(name)
    return f"@{local}" if local in _CS_KEYWORDS else local


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One column with every derived name and type already resolved."""

    column_name: str
    property_name: str
    parameter_name: str
    sql_type: str
    sql_parameter: str
    sql_output_parameter: str
    cs_type: str
    db_type: str
    clr_db_type: str
    ts_type: str
    convert_prefix: str
    convert_suffix: str
    length: int
    nullable: bool
    is_identity: bool
    is_row_guid: bool
    is_primary_key: bool
    in_foreign_key: bool

    @property
    def is_user_supplied(self) -> bool:
        return not (self.is_identity or self.is_row_guid)

    @property
    def is_character(self) -> bool:
        return self.sql_type.split("(", 1)[0] in typemap.CHARACTER_TYPES

    @property
    def sql_name(self) -> str:
        return f"[{self.column_name}]"

    @property
    def sql_variable(self) -> str:
        return f"@{self.column_name}"

    @property
    def sql_assignment(self) -> str:
        """``[Col] = @Col`` as used in SET and WHERE clauses."""
        return f"{self.sql_name} = {self.sql_variable}"

    def read_expression(self, row: str) -> str:
        """C# expression converting ``row["Col"]`` to the property type."""
        return f'{self.convert_prefix}{row}["{self.column_name}"].ToString(){self.convert_suffix}'


@dataclass(frozen=True, slots=True)
class ForeignKeyGroup:
    key: str
    fields: Tuple[FieldDescriptor, ...]

    @property
    def name_suffix(self) -> str:
        """``OrderId_LineNo``: pascal column names joined by underscores."""
        return "_".join(pascal_name(f.column_name) for f in self.fields)


@dataclass(frozen=True, slots=True)
class EntityDescriptor:
    """A table resolved for rendering."""

    table_name: str
    class_name: str
    dto_class: str
    dao_class: str
    variable: str
    instance: str
    fields: Tuple[FieldDescriptor, ...]
    primary_keys: Tuple[FieldDescriptor, ...]
    foreign_key_groups: Tuple[ForeignKeyGroup, ...]
    foreign_key_column_count: int

    # -- Column subsets -------------------------------------------------------

    @property
    def user_fields(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if f.is_user_supplied)

    @property
    def non_key_fields(self) -> Tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if not f.is_primary_key)

    @property
    def identity_field(self) -> Optional[FieldDescriptor]:
        return next((f for f in self.fields if f.is_identity), None)

    @property
    def row_guid_field(self) -> Optional[FieldDescriptor]:
        return next((f for f in self.fields if f.is_row_guid), None)

    @property
    def key_field(self) -> Optional[FieldDescriptor]:
        """First primary key column, falling back to the first column."""
        if self.primary_keys:
            return self.primary_keys[0]
        return self.fields[0] if self.fields else None

    # -- Emission guards ------------------------------------------------------

    @property
    def has_primary_key(self) -> bool:
        return bool(self.primary_keys)

    @property
    def emits_upsert(self) -> bool:
        return self.has_primary_key

    @property
    def emits_update(self) -> bool:
        """Skip pure-key and pure-junction tables."""
        count: int = len(self.fields)
        return (
            self.has_primary_key
            and count != len(self.primary_keys)
            and count != self.foreign_key_column_count
        )

    @property
    def emits_delete(self) -> bool:
        return self.has_primary_key

    @property
    def emits_select(self) -> bool:
        """Covers both Select and SelectAll."""
        return self.has_primary_key and self.foreign_key_column_count != len(self.fields)

    @property
    def has_partial_constructor(self) -> bool:
        return len(self.user_fields) < len(self.fields)


def describe_column(table: Table, column: Column) -> FieldDescriptor:
    info: typemap.SqlTypeInfo = typemap.lookup(column.type, column.name)
    return FieldDescriptor(
        column_name=column.name,
        property_name=pascal_name(column.name),
        parameter_name=cs_local_name(column.name),
        sql_type=typemap.sql_type_declaration(column),
        sql_parameter=typemap.sql_parameter_declaration(column),
        sql_output_parameter=typemap.sql_parameter_declaration(column, check_for_output=True),
        cs_type=info.cs_type,
        db_type=info.db_type,
        clr_db_type=typemap.clr_db_type(column.type),
        ts_type=info.ts_type,
        convert_prefix=info.convert_prefix,
        convert_suffix=info.convert_suffix,
        length=column.length,
        nullable=column.nullable,
        is_identity=column.is_identity,
        is_row_guid=column.is_row_guid_col,
        is_primary_key=table.is_primary_key(column),
        in_foreign_key=table.in_foreign_key(column),
    )


def describe_table(table: Table, config: GenerationConfig) -> EntityDescriptor:
    """Resolve *table* once for every emitter.  Raises ``UnrecognizedType``."""
    fields: List[FieldDescriptor] = [describe_column(table, c) for c in table.columns]
    by_name = {f.column_name: f for f in fields}

    primary_keys: Tuple[FieldDescriptor, ...] = tuple(
        by_name[c.name] for c in table.primary_key_columns
    )
    groups: Tuple[ForeignKeyGroup, ...] = tuple(
        ForeignKeyGroup(key=key, fields=tuple(by_name[c.name] for c in columns))
        for key, columns in table.foreign_key_groups
    )

    entity = EntityDescriptor(
        table_name=table.name,
        class_name=class_name(table.name),
        dto_class=class_name(table.name, config.dto_suffix),
        dao_class=class_name(table.name, config.dao_suffix),
        variable=variable_name(table.name),
        instance=cs_local_name(table.name),
        fields=tuple(fields),
        primary_keys=primary_keys,
        foreign_key_groups=groups,
        foreign_key_column_count=table.foreign_key_column_count,
    )
    logger.debug(
        "Described %s: %d fields, %d PK, %d FK groups.",
        table.name,
        len(fields),
        len(primary_keys),
        len(groups),
    )
    return entity


__all__: List[str] = [
    "FieldDescriptor",
    "ForeignKeyGroup",
    "EntityDescriptor",
    "describe_column",
    "describe_table",
]
