# File: tiergen/errors.py
"""
tiergen - Exception Hierarchy
=============================
Every failure the generation engine can signal for a single table.

None of these is retried: a missing type mapping or an unwritable path is not
transient.  The generator catches them per table and records the table as
failed instead of aborting the whole run.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Union


class TierGenError(Exception):
    """Base class for all tiergen errors."""


class UnrecognizedType(TierGenError):
    """A column's SQL type token has no mapping in the type tables."""

    def __init__(self, type_token: str, column: Optional[str] = None) -> None:
        self.type_token: str = type_token
        self.column: Optional[str] = column
        where: str = f" (column '{column}')" if column else ""
        super().__init__(f"Unrecognized SQL Server data type '{type_token}'{where}.")


class OutputPathError(TierGenError):
    """A destination directory or file cannot be created or written."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path: Path = Path(path)
        self.reason: str = reason
        super().__init__(f"Cannot write '{self.path}': {reason}")


class SchemaInvariantViolation(TierGenError):
    """A table breaks a structural rule the emitters rely on."""

    def __init__(self, table: str, violations: Sequence[str]) -> None:
        self.table: str = table
        self.violations: List[str] = list(violations)
        joined: str = "; ".join(self.violations)
        super().__init__(f"Table '{table}' violates schema invariants: {joined}")


__all__: List[str] = [
    "TierGenError",
    "UnrecognizedType",
    "OutputPathError",
    "SchemaInvariantViolation",
]
