# File: tiergen/cli.py
"""
tiergen - Command-Line Interface
================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Generate everything for a schema
    tiergen -s schema.yaml -o ./generated --database Shop --namespace Shop.Data

    # One shared procedure script, with execute grants for a login
    tiergen -s schema.yaml -o ./out --single-file --grant-login shop_app

    # Only the data layer, wiping the output first
    tiergen -s schema.yaml -o ./out --artifacts dto dao --clean

    # Validate only (no file output)
    python -m tiergen -s schema.yaml --validate-only

Exit codes:
    0 - success
    1 - validation error
    2 - generation error (one or more tables failed)
    3 - I/O or schema-file error
    4 - unexpected error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from tiergen.errors import OutputPathError
from tiergen.models import ArtifactKind, GenerationConfig, SchemaDefinition

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("tiergen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_IO_ERROR: int = 3
EXIT_UNEXPECTED_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``tiergen`` logger based on verbosity level.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity >= 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("tiergen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from tiergen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="tiergen",
        description=(
            "tiergen - data-tier code generator.\n\n"
            "Turns table/column/key metadata (JSON/YAML) into SQL Server "
            "stored procedures, C# data-transfer and data-access classes, "
            "a Web API controller and an Angular component per table."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml -o ./generated\n"
            "  %(prog)s -s schema.yaml -o ./out --single-file --grant-login app\n"
            "  %(prog)s -s schema.yaml --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"tiergen v{__version__}",
    )

    # --- Required arguments ---
    parser.add_argument(
        "-s", "--schema",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the schema definition file (JSON or YAML).",
    )

    # --- Output ---
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Output directory (overrides config.output_dir).",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the schema without generating code.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--database",
        type=str,
        default=None,
        metavar="NAME",
        help="Target database name.",
    )
    config_group.add_argument(
        "--namespace",
        type=str,
        default=None,
        metavar="NS",
        help="C# namespace for generated classes.",
    )
    config_group.add_argument(
        "--sp-prefix",
        type=str,
        default=None,
        metavar="PREFIX",
        help="Prefix for every stored procedure name.",
    )
    config_group.add_argument(
        "--dao-suffix",
        type=str,
        default=None,
        metavar="SUFFIX",
        help="Suffix for data-access class and front-end file names.",
    )
    config_group.add_argument(
        "--dto-suffix",
        type=str,
        default=None,
        metavar="SUFFIX",
        help="Suffix for data-transfer class names.",
    )
    config_group.add_argument(
        "--grant-login",
        type=str,
        default=None,
        metavar="LOGIN",
        help="Login granted execute rights on every procedure.",
    )
    config_group.add_argument(
        "--single-file",
        action="store_true",
        default=False,
        help="Write all procedures to one shared StoredProcedures.sql.",
    )
    config_group.add_argument(
        "--artifacts",
        nargs="+",
        default=None,
        choices=[k.value for k in ArtifactKind],
        metavar="KIND",
        help=f"Artifact kinds to emit: {', '.join(k.value for k in ArtifactKind)}.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Empty the output directory before generation.",
    )
    behaviour_group.add_argument(
        "--fail-fast",
        action="store_true",
        default=False,
        help="Stop at the first table that fails.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {
        "database_name": args.database,
        "target_namespace": args.namespace,
        "stored_procedure_prefix": args.sp_prefix,
        "dao_suffix": args.dao_suffix,
        "dto_suffix": args.dto_suffix,
        "grant_login_name": args.grant_login,
        "output_dir": args.output,
        "artifacts": args.artifacts,
    }
    if args.single_file:
        overrides["create_multiple_files"] = False
    return {k: v for k, v in overrides.items() if v is not None}


# ---------------------------------------------------------------------------
# Input loading
# ---------------------------------------------------------------------------


def _load_inputs(schema_path: Path, args: argparse.Namespace) -> tuple[SchemaDefinition, GenerationConfig]:
    """
    Load and parse the schema file.

    Raises:
        FileNotFoundError / OSError: file cannot be read (exit 3).
        yaml/JSON ``ValueError``: file cannot be parsed (exit 3).
        ``_InvalidInput``: file parsed but the models rejected it (exit 1).
    """
    from tiergen.generator import load_schema_file, parse_raw_schema

    raw: Dict[str, Any] = load_schema_file(schema_path)
    try:
        return parse_raw_schema(raw, _build_config_overrides(args), source_file=schema_path.name)
    except ValueError as exc:
        raise _InvalidInput(str(exc)) from exc


class _InvalidInput(Exception):
    """Schema or config rejected by the models."""


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(schema: SchemaDefinition, config: GenerationConfig, schema_path: Path) -> int:
    """Run validation only (no code generation)."""
    from tiergen.utils import Timer
    from tiergen.validators import validate_full

    logger.info("Running validation-only mode for: %s", schema_path)

    with Timer("validation") as t:
        result = validate_full(schema, config)

    print(f"\n{'='*50}")
    print("  Schema Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Tables:   {len(schema.tables)}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")
    print()
    print(result.format_report())
    if result.is_valid and not result.warnings:
        print("\n  ✅ All validations passed!")
    print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Full generation mode
# ---------------------------------------------------------------------------


def _run_generation(schema: SchemaDefinition, config: GenerationConfig, args: argparse.Namespace) -> int:
    """Run the full generation pipeline and map the report to an exit code."""
    from tiergen.generator import GenerationReport, TierGenerator

    generator: TierGenerator = TierGenerator(
        config,
        fail_fast=args.fail_fast,
        clean_output=args.clean,
    )
    report: GenerationReport = generator.generate(schema)

    print(report.summary())

    if report.success:
        return EXIT_SUCCESS
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the CLI and return the exit code.

    Can be called directly from tests; ``cli_main`` wraps it in ``sys.exit``.
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    schema_path: Path = Path(args.schema)

    try:
        schema, config = _load_inputs(schema_path, args)
    except (FileNotFoundError, ValueError, OSError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return EXIT_IO_ERROR
    except _InvalidInput as exc:
        logger.error("Invalid schema or configuration: %s", exc)
        return EXIT_VALIDATION_ERROR

    logger.info("Schema:  %s (%d tables)", schema_path, schema.table_count)
    logger.info("Output:  %s", config.output_dir)

    try:
        if args.validate_only:
            return _run_validate_only(schema, config, schema_path)
        exit_code: int = _run_generation(schema, config, args)
    except OutputPathError as exc:
        logger.error("Cannot prepare output: %s", exc)
        return EXIT_IO_ERROR
    except PydanticValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # noqa: BLE001
        logger.critical("Unexpected error: %s: %s", type(exc).__name__, exc, exc_info=True)
        return EXIT_UNEXPECTED_ERROR

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """Console-script entry point."""
    sys.exit(main(argv))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "main",
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_IO_ERROR",
    "EXIT_UNEXPECTED_ERROR",
]
