# File: tiergen/exporters.py
"""
tiergen - Output Exporter (File-System Manager)
===============================================

Responsible for:
    1. Preparing (and optionally emptying) the output root.
    2. Writing rendered artifacts atomically (write-to-temp then rename).
    3. Producing ``manifest.json`` with sizes and checksums.

A file is either fully written or untouched: content goes to a temporary
file in the destination directory, is fsynced, and is renamed over the
target.  Any failure removes the temporary file and raises
``OutputPathError``.

The manifest is deterministic: relative paths only, sorted, no timestamps.
Re-running on an unchanged schema rewrites identical bytes.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Mapping

from tiergen.errors import OutputPathError
from tiergen.utils import clean_directory, count_lines, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("tiergen.exporters")

MANIFEST_NAME: str = "manifest.json"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    size_bytes: int
    line_count: int
    sha256: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relative_path": self.relative_path,
            "size_bytes": self.size_bytes,
            "line_count": self.line_count,
            "sha256": self.sha256,
        }


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Every file written by one run, serialisable to JSON."""

    generator_version: str = ""
    database_name: str = ""
    target_namespace: str = ""
    files: List[FileRecord] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def total_bytes(self) -> int:
        return sum(f.size_bytes for f in self.files)

    @property
    def total_lines(self) -> int:
        return sum(f.line_count for f in self.files)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generator_version": self.generator_version,
            "database_name": self.database_name,
            "target_namespace": self.target_namespace,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [f.to_dict() for f in sorted(self.files, key=lambda r: r.relative_path)],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False) + "\n"


# ---------------------------------------------------------------------------
# ProjectExporter
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    Writes rendered artifacts under one output root.

    Usage::

        exporter = ProjectExporter(Path("./generated"), clean=True)
        exporter.prepare()
        exporter.write_files({"Models/Customer.cs": text})
        exporter.write_manifest(version, "Shop", "Shop.Data")

    Thread-safety: NOT thread-safe.  Use one exporter per output directory.
    """

    def __init__(self, output_dir: Path, clean: bool = False) -> None:
        self._output_dir: Path = Path(output_dir)
        self._clean: bool = clean
        self._records: Dict[str, FileRecord] = {}

        logger.debug(
            "ProjectExporter initialised: output_dir=%s, clean=%s.",
            self._output_dir,
            self._clean,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @property
    def records(self) -> List[FileRecord]:
        """Records of files written so far, sorted by relative path."""
        return [self._records[k] for k in sorted(self._records)]

    # -----------------------------------------------------------------
    # Directory management
    # -----------------------------------------------------------------

    def prepare(self) -> None:
        """Create the output root, emptying it first when ``clean`` is set."""
        try:
            if self._clean and self._output_dir.exists():
                logger.info("Cleaning output directory: %s", self._output_dir)
                clean_directory(self._output_dir)
            self._output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputPathError(self._output_dir, str(exc)) from exc

    def resolve(self, relative_path: str) -> Path:
        """Map a ``/``-separated relative path under the output root."""
        rel: PurePosixPath = PurePosixPath(relative_path)
        if rel.is_absolute() or ".." in rel.parts or not rel.parts:
            raise OutputPathError(relative_path, "path must stay inside the output directory")
        return self._output_dir.joinpath(*rel.parts)

    # -----------------------------------------------------------------
    # File writing
    # -----------------------------------------------------------------

    def write_file(self, relative_path: str, content: str) -> FileRecord:
        """Write one file atomically and record it."""
        target: Path = self.resolve(relative_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputPathError(target.parent, str(exc)) from exc

        encoded: bytes = content.encode("utf-8")
        self._atomic_write(target, encoded)

        record: FileRecord = FileRecord(
            relative_path=relative_path,
            size_bytes=len(encoded),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )
        self._records[relative_path] = record
        logger.debug(
            "Wrote file: %s (%d bytes, %d lines).",
            relative_path,
            record.size_bytes,
            record.line_count,
        )
        return record

    def write_files(self, files: Mapping[str, str]) -> List[FileRecord]:
        """Write every entry of *files*; stops at the first failure."""
        return [self.write_file(path, content) for path, content in files.items()]

    @staticmethod
    def _atomic_write(target_path: Path, data: bytes) -> None:
        """
        Write data to target_path atomically using a temporary file.

        The temporary file lives in the target directory so ``os.replace``
        never crosses a filesystem boundary.
        """
        fd: int = -1
        tmp_path: str = ""
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(target_path.parent),
                prefix=f".{target_path.name}.",
                suffix=".tmp",
            )
            os.write(fd, data)
            os.fsync(fd)
            os.close(fd)
            fd = -1

            os.replace(tmp_path, str(target_path))
            tmp_path = ""
        except OSError as exc:
            raise OutputPathError(target_path, str(exc)) from exc
        finally:
            if fd >= 0:
                os.close(fd)
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    # -----------------------------------------------------------------
    # Manifest
    # -----------------------------------------------------------------

    def build_manifest(
        self,
        generator_version: str,
        database_name: str = "",
        target_namespace: str = "",
    ) -> ExportManifest:
        files: List[FileRecord] = [r for r in self.records if r.relative_path != MANIFEST_NAME]
        return ExportManifest(
            generator_version=generator_version,
            database_name=database_name,
            target_namespace=target_namespace,
            files=files,
        )

    def write_manifest(
        self,
        generator_version: str,
        database_name: str = "",
        target_namespace: str = "",
    ) -> ExportManifest:
        """Write ``manifest.json`` for every file recorded so far and return it."""
        manifest: ExportManifest = self.build_manifest(
            generator_version, database_name, target_namespace
        )
        self.write_file(MANIFEST_NAME, manifest.to_json())
        logger.info(
            "Manifest written: %d files, %d bytes.",
            manifest.total_files,
            manifest.total_bytes,
        )
        return manifest


__all__: List[str] = [
    "MANIFEST_NAME",
    "FileRecord",
    "ExportManifest",
    "ProjectExporter",
]
