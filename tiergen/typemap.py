# File: tiergen/typemap.py
"""
tiergen - SQL Server Type Mapping
=================================
Maps SQL Server type tokens onto the type systems of every generated
artifact: C# property types, ``SqlDbType`` enumeration tokens, the
conversion wrapper used when reading a ``DataRow`` value back as text,
TypeScript field types, and the SQL parameter declaration itself.

The table is total over the recognised tokens and nothing else.  An unknown
token raises ``UnrecognizedType``; silently defaulting to ``object`` would
leak a wrong type into every downstream artifact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from tiergen.errors import UnrecognizedType
from tiergen.models import Column
from tiergen.utils import camel_name

logger: logging.Logger = logging.getLogger("tiergen.typemap")


@dataclass(frozen=True, slots=True)
class SqlTypeInfo:
    """Everything the emitters need to know about one SQL Server type."""

    cs_type: str
    db_type: str
    ts_type: str
    convert_prefix: str = ""
    convert_suffix: str = ""
    # "none" | "length" | "precision"
    declaration: str = "none"


_TO_INT32: Tuple[str, str] = ("Convert.ToInt32(", ")")
_TO_INT64: Tuple[str, str] = ("Convert.ToInt64(", ")")
_TO_INT16: Tuple[str, str] = ("Convert.ToInt16(", ")")
_TO_BYTE: Tuple[str, str] = ("Convert.ToByte(", ")")
_TO_BOOL: Tuple[str, str] = ("Convert.ToBoolean(", ")")
_TO_DECIMAL: Tuple[str, str] = ("Convert.ToDecimal(", ")")
_TO_DOUBLE: Tuple[str, str] = ("Convert.ToDouble(", ")")
_TO_SINGLE: Tuple[str, str] = ("Convert.ToSingle(", ")")
_TO_DATETIME: Tuple[str, str] = ("Convert.ToDateTime(", ")")
_FROM_BASE64: Tuple[str, str] = ("Convert.FromBase64String(", ")")


def _info(cs: str, db: str, ts: str, conv: Tuple[str, str] = ("", ""), declaration: str = "none") -> SqlTypeInfo:
    return SqlTypeInfo(cs, db, ts, conv[0], conv[1], declaration)


_SQL_TYPE_MAP: Dict[str, SqlTypeInfo] = {
    # Exact numerics
    "bigint": _info("long", "BigInt", "number", _TO_INT64),
    "int": _info("int", "Int", "number", _TO_INT32),
    "smallint": _info("short", "SmallInt", "number", _TO_INT16),
    "tinyint": _info("byte", "TinyInt", "number", _TO_BYTE),
    "bit": _info("bool", "Bit", "boolean", _TO_BOOL),
    "decimal": _info("decimal", "Decimal", "number", _TO_DECIMAL, "precision"),
    "numeric": _info("decimal", "Decimal", "number", _TO_DECIMAL, "precision"),
    "money": _info("decimal", "Money", "number", _TO_DECIMAL),
    "smallmoney": _info("decimal", "SmallMoney", "number", _TO_DECIMAL),
    # Approximate numerics
    "float": _info("double", "Float", "number", _TO_DOUBLE),
    "real": _info("float", "Real", "number", _TO_SINGLE),
    # Date and time
    "date": _info("DateTime", "Date", "Date", _TO_DATETIME),
    "datetime": _info("DateTime", "DateTime", "Date", _TO_DATETIME),
    "datetime2": _info("DateTime", "DateTime2", "Date", _TO_DATETIME),
    "smalldatetime": _info("DateTime", "SmallDateTime", "Date", _TO_DATETIME),
    "datetimeoffset": _info(
        "DateTimeOffset", "DateTimeOffset", "Date", ("DateTimeOffset.Parse(", ")")
    ),
    "time": _info("TimeSpan", "Time", "string", ("TimeSpan.Parse(", ")")),
    # Character strings
    "char": _info("string", "Char", "string", declaration="length"),
    "varchar": _info("string", "VarChar", "string", declaration="length"),
    "text": _info("string", "Text", "string"),
    "nchar": _info("string", "NChar", "string", declaration="length"),
    "nvarchar": _info("string", "NVarChar", "string", declaration="length"),
    "ntext": _info("string", "NText", "string"),
    "xml": _info("string", "Xml", "string"),
    # Binary strings
    "binary": _info("byte[]", "Binary", "string", _FROM_BASE64, "length"),
    "varbinary": _info("byte[]", "VarBinary", "string", _FROM_BASE64, "length"),
    "image": _info("byte[]", "Image", "string", _FROM_BASE64),
    "timestamp": _info("byte[]", "Timestamp", "string", _FROM_BASE64),
    # Other
    "uniqueidentifier": _info("Guid", "UniqueIdentifier", "string", ("Guid.Parse(", ")")),
    "sql_variant": _info("object", "Variant", "any"),
}

CHARACTER_TYPES: Tuple[str, ...] = ("char", "varchar", "nchar", "nvarchar")


def lookup(source_type: str, column: str = "") -> SqlTypeInfo:
    """Return the mapping for *source_type* or raise ``UnrecognizedType``."""
    info = _SQL_TYPE_MAP.get(source_type.strip().lower())
    if info is None:
        raise UnrecognizedType(source_type, column or None)
    return info


def is_recognized(source_type: str) -> bool:
    return source_type.strip().lower() in _SQL_TYPE_MAP


def parameter_type(source_type: str) -> str:
    """C# type used for properties and method parameters."""
    return lookup(source_type).cs_type


def db_parameter_type(source_type: str) -> str:
    """``SqlDbType`` enumeration member name."""
    return lookup(source_type).db_type


def conversion_expression(source_type: str) -> Tuple[str, str]:
    """Prefix/suffix that re-cast a ``row["Col"].ToString()`` read."""
    info: SqlTypeInfo = lookup(source_type)
    return info.convert_prefix, info.convert_suffix


_CLR_DB_TYPES: Dict[str, str] = {
    "long": "Int64",
    "int": "Int32",
    "short": "Int16",
    "byte": "Byte",
    "bool": "Boolean",
    "decimal": "Decimal",
    "double": "Double",
    "float": "Single",
    "DateTime": "DateTime",
    "DateTimeOffset": "DateTimeOffset",
    "TimeSpan": "Time",
    "string": "String",
    "byte[]": "Binary",
    "Guid": "Guid",
}


def clr_db_type(source_type: str) -> str:
    """``System.Data.DbType`` member name, as used by Dapper ``DynamicParameters``."""
    return _CLR_DB_TYPES.get(lookup(source_type).cs_type, "Object")


def frontend_type(source_type: str) -> str:
    """TypeScript field type for the front-end model."""
    return lookup(source_type).ts_type


def sql_type_declaration(column: Column) -> str:
    """The column's type as written in a parameter list, e.g. ``varchar(50)``."""
    info: SqlTypeInfo = lookup(column.type, column.name)
    token: str = column.type
    if info.declaration == "length" and column.length:
        size: str = "max" if column.length == -1 else str(column.length)
        return f"{token}({size})"
    if info.declaration == "precision" and column.precision:
        return f"{token}({column.precision}, {column.scale or 0})"
    return token


def sql_parameter_declaration(column: Column, check_for_output: bool = False) -> str:
    """
    Stored-procedure parameter declaration such as ``@Name varchar(50)``.

    With *check_for_output*, identity and row-guid columns are declared as
    ``output`` parameters.
    """
    declaration: str = f"@{column.name} {sql_type_declaration(column)}"
    if check_for_output and not column.is_user_supplied:
        declaration += " output"
    return declaration


def method_parameter(column: Column) -> str:
    """C# method parameter: ``string email``."""
    return f"{lookup(column.type, column.name).cs_type} {camel_name(column.name)}"


__all__: List[str] = [
    "SqlTypeInfo",
    "CHARACTER_TYPES",
    "lookup",
    "is_recognized",
    "parameter_type",
    "db_parameter_type",
    "conversion_expression",
    "clr_db_type",
    "frontend_type",
    "sql_type_declaration",
    "sql_parameter_declaration",
    "method_parameter",
]
