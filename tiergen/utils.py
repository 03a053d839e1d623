# File: tiergen/utils.py
"""
tiergen - Naming Transforms & Helpers
=====================================
Identifier formatting shared by every emitter, plus small text, checksum and
timing helpers used by the generation pipeline.

The naming functions are pure and decorated with ``@lru_cache(maxsize=None)``
because the same column names are formatted over and over while a table's
artifacts are rendered.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import re
import shutil
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("tiergen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_SEGMENT_SPLIT_RE: re.Pattern[str] = re.compile(r"[^A-Za-z0-9]+")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)


# ---------------------------------------------------------------------------
# Cached naming transforms
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def pascal_name(name: str) -> str:
    """
    Convert a raw schema identifier to PascalCase.

    The name is split on underscores, spaces and any other non-alphanumeric
    character.  Each segment gets its first character uppercased and keeps
    the rest of its casing, so existing boundaries survive::

        customer_id  -> CustomerId
        CustomerID   -> CustomerID
        orderLine    -> OrderLine
    """
    segments: List[str] = [s for s in _SEGMENT_SPLIT_RE.split(name) if s]
    return "".join(s[0].upper() + s[1:] for s in segments)


@functools.lru_cache(maxsize=None)
def camel_name(name: str) -> str:
    """``pascal_name`` with the first character lowercased."""
    pascal: str = pascal_name(name)
    return pascal[:1].lower() + pascal[1:]


@functools.lru_cache(maxsize=None)
def variable_name(table_name: str) -> str:
    """Base token used for locals and parameters inside an emitted class."""
    return pascal_name(table_name)


@functools.lru_cache(maxsize=None)
def class_name(table_name: str, suffix: str = "") -> str:
    return pascal_name(table_name) + suffix


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual lowercase words from any casing style.

    Returns a tuple so the result stays hashable for the LRU cache.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


@functools.lru_cache(maxsize=None)
def kebab_name(name: str) -> str:
    """Convert to kebab-case (Angular selectors)."""
    return "-".join(_extract_words(name))


@functools.lru_cache(maxsize=None)
def label_text(name: str) -> str:
    """Human-readable label: ``CustomerEmail`` -> ``Customer Email``."""
    return " ".join(w.capitalize() for w in _extract_words(name))


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def indent_lines(lines: Sequence[str], level: int = 1, unit: str = "    ") -> List[str]:
    """Indent non-blank lines, returning a new list."""
    prefix: str = unit * level
    return [prefix + line if line.strip() else line for line in lines]


def join_lines(lines: Sequence[str]) -> str:
    """Join rendered lines into file content terminated by a single newline."""
    return "\n".join(lines).rstrip("\n") + "\n"


# ---------------------------------------------------------------------------
# Directory helpers
# ---------------------------------------------------------------------------


def clean_directory(path: Path, keep_git: bool = True) -> None:
    """
    Remove all contents of a directory without removing the directory itself.

    If *keep_git* is True, ``.git`` and ``.gitignore`` are preserved.
    """
    if not path.exists():
        return

    for item in path.iterdir():
        if keep_git and item.name in {".git", ".gitignore"}:
            continue
        if item.is_dir():
            shutil.rmtree(item)
        else:
            item.unlink()

    logger.debug("Cleaned directory: %s (keep_git=%s)", path, keep_git)


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("render Customer") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


__all__: List[str] = [
    "pascal_name",
    "camel_name",
    "variable_name",
    "class_name",
    "kebab_name",
    "label_text",
    "indent_lines",
    "join_lines",
    "clean_directory",
    "sha256_hex",
    "count_lines",
    "Timer",
]
