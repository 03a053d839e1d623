# File: tiergen/__init__.py
"""
tiergen - Data-Tier Code Generator
==================================

Turns relational table metadata (JSON/YAML) into the layers of a classic
multi-tier application: SQL Server stored procedures, C# data-transfer and
data-access classes (plain ADO.NET and Dapper), Windows Forms code-behind,
an ASP.NET Web API controller and an Angular component with its HTML
template.

Architecture overview::

    ┌──────────────┐     ┌───────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ TierGenerator │────▶│   descriptors    │
    │   (cli.py)   │     │ (generator.py)│     │ (EntityDescriptor)│
    └──────────────┘     └───────┬───────┘     └────────┬─────────┘
                                 │                      │
                    ┌────────────┼────────────┐         ▼
                    ▼            ▼            ▼   procedures / datalayer /
             ┌──────────┐ ┌───────────┐ ┌───────────┐   presentation
             │validators│ │  models   │ │ exporters │
             │  (.py)   │ │  (.py)    │ │  (.py)    │
             └──────────┘ └───────────┘ └───────────┘

Usage::

    # As a library
    from tiergen import TierGenerator, GenerationConfig, SchemaDefinition
    generator = TierGenerator(config)
    report = generator.generate(schema)

    # From the command line
    python -m tiergen --schema schema.yaml --output ./generated -v

Public API:
    - TierGenerator      - Master orchestrator
    - GenerationConfig   - Generation settings model
    - SchemaDefinition   - Table metadata model
    - ProcedureEmitter   - Stored procedure builder
    - DataLayerEmitter   - DTO/DAO/Dapper class builder
    - PresentationEmitter - Web API, Angular and form builder
    - ProjectExporter    - File-system writer
    - validate_full      - Schema validation entry point
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from tiergen.models import (
    ArtifactKind,
    Column,
    GenerationConfig,
    GenerationResult,
    ProcedureShape,
    SchemaDefinition,
    Table,
    TableResult,
)
from tiergen.errors import (
    OutputPathError,
    SchemaInvariantViolation,
    TierGenError,
    UnrecognizedType,
)
from tiergen.validators import validate_full, ValidationResult
from tiergen.descriptors import EntityDescriptor, FieldDescriptor, describe_table
from tiergen.procedures import Procedure, ProcedureEmitter
from tiergen.datalayer import DataLayerEmitter
from tiergen.presentation import PresentationEmitter
from tiergen.exporters import ExportManifest, FileRecord, ProjectExporter
from tiergen.generator import (
    GenerationReport,
    TierGenerator,
    generate_from_file,
    load_schema_file,
    parse_raw_schema,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Core orchestrator
    "TierGenerator",
    "GenerationReport",
    "generate_from_file",
    "load_schema_file",
    "parse_raw_schema",
    # Models
    "ArtifactKind",
    "Column",
    "GenerationConfig",
    "GenerationResult",
    "ProcedureShape",
    "SchemaDefinition",
    "Table",
    "TableResult",
    # Errors
    "TierGenError",
    "UnrecognizedType",
    "OutputPathError",
    "SchemaInvariantViolation",
    # Validation
    "validate_full",
    "ValidationResult",
    # Emitters
    "EntityDescriptor",
    "FieldDescriptor",
    "describe_table",
    "Procedure",
    "ProcedureEmitter",
    "DataLayerEmitter",
    "PresentationEmitter",
    # Exporters
    "ProjectExporter",
    "ExportManifest",
    "FileRecord",
]
