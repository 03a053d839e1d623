# File: tiergen/generator.py
"""
tiergen - Generation Pipeline (Orchestrator)
============================================

Connects every phase together:

    Schema Input → Validation → Descriptors → Emitters → File Export

Workflow::

    1. Load the schema from a JSON/YAML file (or accept in-memory objects).
    2. Parse into ``SchemaDefinition`` + ``GenerationConfig`` (models.py).
    3. Validate the configuration and cross-table naming (validators.py).
    4. For each table, in supplied order:
         a. validate it; errors raise ``SchemaInvariantViolation``,
         b. resolve its ``EntityDescriptor`` once,
         c. render every selected artifact in memory,
         d. write the table's files atomically.
    5. Assemble the shared stored-procedure script, the grant script and
       the manifest.
    6. Return a ``GenerationReport`` with per-table results and timings.

Error handling strategy:
    - ``UnrecognizedType``, ``OutputPathError`` and
      ``SchemaInvariantViolation`` fail only the table that raised them.
      Nothing is written for a table that fails before its write step.
    - With ``fail_fast`` the run stops at the first failed table; the
      remaining tables are reported as skipped.
    - The shared script only ever contains procedures of tables that were
      written successfully, and is rebuilt from scratch on every run.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from tiergen.datalayer import DataLayerEmitter
from tiergen.descriptors import EntityDescriptor, describe_table
from tiergen.errors import (
    OutputPathError,
    SchemaInvariantViolation,
    TierGenError,
    UnrecognizedType,
)
from tiergen.exporters import MANIFEST_NAME, ExportManifest, ProjectExporter
from tiergen.models import (
    ArtifactKind,
    GenerationConfig,
    GenerationResult,
    SchemaDefinition,
    Table,
    TableResult,
)
from tiergen.presentation import PresentationEmitter
from tiergen.procedures import (
    GRANT_SCRIPT_NAME,
    SHARED_SCRIPT_NAME,
    Procedure,
    ProcedureEmitter,
)
from tiergen.utils import Timer
from tiergen.validators import (
    ValidationResult,
    validate_class_names,
    validate_config,
    validate_table,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("tiergen.generator")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``TierGenerator.generate()``.

    ``result`` holds the per-table outcomes; the report adds timings,
    validation messages and the manifest.
    """

    success: bool = False
    output_directory: str = ""
    result: GenerationResult = field(default_factory=GenerationResult)
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  tiergen - Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Tables succeeded: {len(self.result.succeeded_tables)}")
        lines.append(f"  Tables failed:    {len(self.result.failed_tables)}")
        lines.append(f"  Files written:    {self.result.total_files}")
        lines.append(f"  Total time:       {self.result.duration_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.result.tables:
            lines.append(f"{'─'*60}")
            lines.append("  Tables:")
            for table in self.result.tables:
                icon = "✓" if table.success else "✗"
                lines.append(
                    f"    {icon} {table.table:<28s} "
                    f"{len(table.files):>3d} files  "
                    f"{len(table.procedures):>3d} procedures"
                )
                for err in table.errors:
                    lines.append(f"        ✗ {err}")
                for warn in table.warnings:
                    lines.append(f"        ⚠ {warn}")

        if self.validation_errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Errors ({len(self.validation_errors)}):")
            for err in self.validation_errors:
                lines.append(f"    ✗ {err}")

        if self.validation_warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Validation Warnings ({len(self.validation_warnings)}):")
            for warn in self.validation_warnings:
                lines.append(f"    ⚠ {warn}")

        if self.result.errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Run Errors ({len(self.result.errors)}):")
            for err in self.result.errors:
                lines.append(f"    ✗ {err}")

        if self.skipped_tables:
            lines.append(f"{'─'*60}")
            lines.append(f"  Skipped Tables ({len(self.skipped_tables)}):")
            for tbl in self.skipped_tables:
                lines.append(f"    ⊘ {tbl}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Schema loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        text: str = path.read_text(encoding="utf-8")
        data: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        text: str = path.read_text(encoding="utf-8")
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a schema definition file (JSON or YAML).

    Dispatches on the file extension; unknown extensions are tried as JSON
    first, then YAML.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Schema path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
    try:
        return _load_json_file(path)
    except ValueError:
        return _load_yaml_file(path)


def parse_raw_schema(
    raw: Mapping[str, Any],
    config_overrides: Optional[Mapping[str, Any]] = None,
    source_file: Optional[str] = None,
) -> Tuple[SchemaDefinition, GenerationConfig]:
    """
    Parse a raw mapping (from JSON/YAML) into validated Pydantic models.

    Expected top-level keys:
        - "tables": list of table definitions
        - "config": optional generation settings

    *config_overrides* entries that are not ``None`` replace values from
    the file.

    Raises:
        ValueError: If required keys are missing or validation fails.
    """
    tables: Any = raw.get("tables")
    if not isinstance(tables, list):
        raise ValueError("Cannot find schema definition in input. Expected a top-level 'tables' list.")

    config_data: Any = raw.get("config") or {}
    if not isinstance(config_data, dict):
        raise ValueError("Top-level 'config' must be a mapping.")
    config_data = dict(config_data)
    if config_overrides:
        config_data.update({k: v for k, v in config_overrides.items() if v is not None})

    try:
        schema: SchemaDefinition = SchemaDefinition.model_validate(
            {"tables": tables, "source_file": source_file}
        )
    except PydanticValidationError as exc:
        raise ValueError(f"Schema validation failed: {exc}") from exc

    try:
        config: GenerationConfig = GenerationConfig.model_validate(config_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc

    return schema, config


# ---------------------------------------------------------------------------
# Rendered table
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RenderedTable:
    """Every artifact of one table, rendered but not yet written."""

    entity: EntityDescriptor
    files: Dict[str, str]
    procedures: List[Procedure]
    warnings: List[str]


# ---------------------------------------------------------------------------
# TierGenerator - master orchestrator
# ---------------------------------------------------------------------------


class TierGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = TierGenerator(config)
        report = generator.generate(schema)
        print(report.summary())

    The generator is reusable: create once, call ``generate()`` many times.
    """

    def __init__(
        self,
        config: GenerationConfig,
        *,
        fail_fast: bool = False,
        clean_output: bool = False,
    ) -> None:
        self._config: GenerationConfig = config
        self._fail_fast: bool = fail_fast
        self._clean_output: bool = clean_output

        self._procedures: ProcedureEmitter = ProcedureEmitter(config)
        self._datalayer: DataLayerEmitter = DataLayerEmitter(config)
        self._presentation: PresentationEmitter = PresentationEmitter(config)

        logger.debug(
            "TierGenerator initialised: fail_fast=%s, clean=%s, artifacts=%s.",
            fail_fast,
            clean_output,
            ", ".join(str(a) for a in config.artifacts),
        )

    @property
    def config(self) -> GenerationConfig:
        return self._config

    # -----------------------------------------------------------------
    # Rendering (pure, no filesystem access)
    # -----------------------------------------------------------------

    def render_table(self, table: Table) -> RenderedTable:
        """
        Validate, describe and render one table.

        Raises:
            SchemaInvariantViolation: If the table fails validation.
            UnrecognizedType: If a column type has no mapping.
        """
        validation: ValidationResult = validate_table(table)
        for err in validation.errors:
            if err.code == "UNRECOGNIZED_TYPE":
                raise UnrecognizedType(err.context["type"], err.context["column"])
        if validation.has_errors:
            raise SchemaInvariantViolation(table.name, [e.message for e in validation.errors])

        entity: EntityDescriptor = describe_table(table, self._config)
        config: GenerationConfig = self._config
        files: Dict[str, str] = {}
        procedures: List[Procedure] = []

        if config.emits(ArtifactKind.PROCEDURES):
            procedures = self._procedures.build(entity)
            if config.create_multiple_files:
                for procedure in procedures:
                    files[self._procedures.relative_path(procedure)] = self._procedures.render_file(procedure)
        if config.emits(ArtifactKind.DTO):
            files[self._datalayer.dto_path(entity)] = self._datalayer.render_dto(entity)
        if config.emits(ArtifactKind.DAO):
            files[self._datalayer.dao_path(entity)] = self._datalayer.render_dao(entity)
        if config.emits(ArtifactKind.DAPPER) and entity.emits_upsert:
            files[self._datalayer.dapper_path(entity)] = self._datalayer.render_dapper(entity)
        if config.emits(ArtifactKind.FORM):
            files[self._presentation.form_path(entity)] = self._presentation.render_form(entity)
        if config.emits(ArtifactKind.WEB_API):
            files[self._presentation.controller_path(entity)] = self._presentation.render_controller(entity)
        if config.emits(ArtifactKind.ANGULAR_COMPONENT):
            files[self._presentation.component_path(entity)] = self._presentation.render_component(entity)
        if config.emits(ArtifactKind.ANGULAR_MARKUP):
            files[self._presentation.markup_path(entity)] = self._presentation.render_markup(entity)

        return RenderedTable(
            entity=entity,
            files=files,
            procedures=procedures,
            warnings=[w.message for w in validation.warnings],
        )

    def render_shared_script(self, procedures: List[Procedure]) -> str:
        return self._procedures.render_shared(procedures)

    # -----------------------------------------------------------------
    # Public: generate
    # -----------------------------------------------------------------

    def generate(
        self,
        schema: SchemaDefinition,
        output_dir: Optional[Path] = None,
    ) -> GenerationReport:
        """
        Full pipeline from pre-parsed schema and config objects.

        Raises:
            OutputPathError: If the output root itself cannot be prepared.
        """
        root: Path = Path(output_dir) if output_dir is not None else Path(self._config.output_dir)
        report: GenerationReport = GenerationReport(output_directory=str(root))
        pipeline_start: float = time.perf_counter()

        if not self._step_validate(schema, report):
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        exporter: ProjectExporter = ProjectExporter(root, clean=self._clean_output)
        exporter.prepare()

        shared: List[Procedure] = self._step_tables(schema, exporter, report)
        self._step_shared_files(shared, exporter, report)

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(self, schema: SchemaDefinition, report: GenerationReport) -> bool:
        """Config and cross-table checks; per-table checks run later."""
        with Timer("validation") as t:
            result: ValidationResult = validate_config(self._config)
            result.merge(validate_class_names(schema))

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Config",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=f"{result.error_count} error(s), {result.warning_count} warning(s)",
        ))

        for err in result.errors:
            logger.error("  ✗ %s", err)
        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)
        return result.is_valid

    # -----------------------------------------------------------------
    # Pipeline step: Tables
    # -----------------------------------------------------------------

    def _step_tables(
        self,
        schema: SchemaDefinition,
        exporter: ProjectExporter,
        report: GenerationReport,
    ) -> List[Procedure]:
        """Render and write each table; returns procedures for the shared script."""
        shared: List[Procedure] = []

        with Timer("tables") as t:
            for index, table in enumerate(schema.tables):
                table_result: TableResult = TableResult(table=table.name)
                report.result.tables.append(table_result)
                try:
                    with Timer(f"render {table.name}"):
                        rendered: RenderedTable = self.render_table(table)
                    table_result.warnings = rendered.warnings
                    exporter.write_files(rendered.files)
                except TierGenError as exc:
                    table_result.errors.append(str(exc))
                    logger.error("Table %s failed: %s", table.name, exc)
                    if self._fail_fast:
                        report.skipped_tables.extend(rest.name for rest in schema.tables[index + 1:])
                        logger.error(
                            "Fail-fast: skipping %d remaining table(s).",
                            len(report.skipped_tables),
                        )
                        break
                    continue

                table_result.files = list(rendered.files)
                table_result.procedures = [p.name for p in rendered.procedures]
                table_result.success = True
                if not self._config.create_multiple_files:
                    shared.extend(rendered.procedures)
                logger.info(
                    "Table %s: %d files, %d procedures.",
                    table.name,
                    len(rendered.files),
                    len(rendered.procedures),
                )

        result: GenerationResult = report.result
        report.step_metrics.append(GenerationStepMetric(
            step_name="Generate Tables",
            success=not result.failed_tables,
            elapsed_seconds=t.elapsed,
            detail=f"{len(result.succeeded_tables)} ok, {len(result.failed_tables)} failed",
        ))
        return shared

    # -----------------------------------------------------------------
    # Pipeline step: Shared files
    # -----------------------------------------------------------------

    def _write_shared(
        self,
        exporter: ProjectExporter,
        report: GenerationReport,
        relative_path: str,
        content: str,
    ) -> None:
        try:
            exporter.write_file(relative_path, content)
        except OutputPathError as exc:
            report.result.errors.append(str(exc))
            logger.error("Could not write %s: %s", relative_path, exc)
            return
        report.result.shared_files.append(relative_path)

    def _step_shared_files(
        self,
        shared: List[Procedure],
        exporter: ProjectExporter,
        report: GenerationReport,
    ) -> None:
        """Shared script, grant script and manifest."""
        import tiergen

        config: GenerationConfig = self._config
        with Timer("shared_files") as t:
            if config.emits(ArtifactKind.PROCEDURES):
                if not config.create_multiple_files:
                    self._write_shared(
                        exporter, report, SHARED_SCRIPT_NAME, self.render_shared_script(shared)
                    )
                if config.grants_enabled:
                    self._write_shared(
                        exporter, report, GRANT_SCRIPT_NAME, self._procedures.grant_script()
                    )

            if config.generate_manifest:
                try:
                    report.manifest = exporter.write_manifest(
                        tiergen.__version__, config.database_name, config.target_namespace
                    )
                except OutputPathError as exc:
                    report.result.errors.append(str(exc))
                    logger.error("Could not write %s: %s", MANIFEST_NAME, exc)
                else:
                    report.result.shared_files.append(MANIFEST_NAME)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Shared Files",
            success=not report.result.errors,
            elapsed_seconds=t.elapsed,
            detail=", ".join(report.result.shared_files) or "none",
        ))

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(self, report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.result.duration_seconds = total_elapsed
        report.success = (
            not report.validation_errors
            and not report.skipped_tables
            and report.result.success
        )
        if report.success:
            logger.info(
                "Generation complete: %d files in %.3fs.",
                report.result.total_files,
                total_elapsed,
            )
        else:
            logger.error(
                "Generation finished with failures: %d table(s) failed, %d run error(s).",
                len(report.result.failed_tables),
                len(report.result.errors),
            )
        return report


def generate_from_file(
    schema_path: Path,
    config_overrides: Optional[Mapping[str, Any]] = None,
    *,
    fail_fast: bool = False,
    clean_output: bool = False,
) -> GenerationReport:
    """Load *schema_path*, parse it and run the whole pipeline."""
    raw: Dict[str, Any] = load_schema_file(schema_path)
    schema, config = parse_raw_schema(raw, config_overrides, source_file=schema_path.name)
    generator: TierGenerator = TierGenerator(config, fail_fast=fail_fast, clean_output=clean_output)
    return generator.generate(schema)


__all__: List[str] = [
    "GenerationReport",
    "GenerationStepMetric",
    "RenderedTable",
    "TierGenerator",
    "generate_from_file",
    "load_schema_file",
    "parse_raw_schema",
]
