"""
tests/test_cli.py
Tests for the tiergen command-line interface and its exit codes.
"""

from __future__ import annotations

import argparse
import copy
import pathlib
from typing import Any, Dict

import pytest
import yaml

from tiergen.cli import (
    EXIT_GENERATION_ERROR,
    EXIT_IO_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    _build_config_overrides,
    _build_parser,
    cli_main,
    main,
)


def _write(tmp_path: pathlib.Path, data: Dict[str, Any], name: str = "schema.yaml") -> pathlib.Path:
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestParser:

    def test_schema_is_required(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _build_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "tiergen v" in capsys.readouterr().out

    def test_unknown_artifact_is_rejected(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["-s", "x.yaml", "--artifacts", "orm"])

    def test_dapper_and_form_artifacts(self) -> None:
        args = _build_parser().parse_args(["-s", "x.yaml", "--artifacts", "dapper", "form"])
        assert args.artifacts == ["dapper", "form"]

    def test_overrides(self) -> None:
        args: argparse.Namespace = _build_parser().parse_args([
            "-s", "x.yaml",
            "-o", "out",
            "--database", "Shop",
            "--sp-prefix", "usp_",
            "--single-file",
            "--artifacts", "procedures", "dto",
        ])
        overrides = _build_config_overrides(args)
        assert overrides == {
            "database_name": "Shop",
            "stored_procedure_prefix": "usp_",
            "output_dir": "out",
            "artifacts": ["procedures", "dto"],
            "create_multiple_files": False,
        }

    def test_no_flags_no_overrides(self) -> None:
        args = _build_parser().parse_args(["-s", "x.yaml"])
        assert _build_config_overrides(args) == {}


class TestMain:

    def test_success(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "generated"
        code = main(["-s", str(schema_yaml_path), "-o", str(out), "-q"])
        assert code == EXIT_SUCCESS
        assert (out / "Models" / "Customer.cs").exists()

    def test_single_file_flag(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "generated"
        code = main(["-s", str(schema_yaml_path), "-o", str(out), "--single-file", "-q"])
        assert code == EXIT_SUCCESS
        assert (out / "StoredProcedures.sql").exists()
        assert not (out / "InsertSPs").exists()

    def test_validate_only_writes_nothing(
        self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        out = tmp_path / "generated"
        code = main(["-s", str(schema_yaml_path), "-o", str(out), "--validate-only", "-q"])
        assert code == EXIT_SUCCESS
        assert not out.exists()
        assert "Schema Validation Report" in capsys.readouterr().out

    def test_validate_only_reports_errors(self, schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> None:
        data = copy.deepcopy(schema_dict)
        data["tables"][0]["columns"][1]["type"] = "hyperblob"
        code = main(["-s", str(_write(tmp_path, data)), "--validate-only", "-q"])
        assert code == EXIT_VALIDATION_ERROR

    def test_missing_schema_file(self, tmp_path: pathlib.Path) -> None:
        assert main(["-s", str(tmp_path / "nope.yaml"), "-q"]) == EXIT_IO_ERROR

    def test_unparseable_schema_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("tables: [unclosed", encoding="utf-8")
        assert main(["-s", str(path), "-q"]) == EXIT_IO_ERROR

    def test_model_rejects_input(self, schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> None:
        data = copy.deepcopy(schema_dict)
        del data["config"]["database_name"]
        assert main(["-s", str(_write(tmp_path, data)), "-q"]) == EXIT_VALIDATION_ERROR

    def test_config_validation_error(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        code = main([
            "-s", str(schema_yaml_path),
            "-o", str(tmp_path / "out"),
            "--namespace", "1Shop",
            "-q",
        ])
        assert code == EXIT_VALIDATION_ERROR

    def test_equal_suffixes_fail_validation(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        code = main([
            "-s", str(schema_yaml_path),
            "-o", str(out),
            "--dao-suffix", "Data",
            "--dto-suffix", "Data",
            "-q",
        ])
        assert code == EXIT_VALIDATION_ERROR
        assert not out.exists()

    def test_failed_table(self, schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> None:
        data = copy.deepcopy(schema_dict)
        data["tables"][1]["columns"][0]["type"] = "hyperblob"
        code = main(["-s", str(_write(tmp_path, data)), "-o", str(tmp_path / "out"), "-q"])
        assert code == EXIT_GENERATION_ERROR
        assert (tmp_path / "out" / "Models" / "Customer.cs").exists()

    def test_output_root_is_a_file(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        root = tmp_path / "taken"
        root.write_text("x", encoding="utf-8")
        assert main(["-s", str(schema_yaml_path), "-o", str(root), "-q"]) == EXIT_IO_ERROR

    def test_cli_main_exits(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli_main(["-s", str(tmp_path / "nope.yaml"), "-q"])
        assert exc_info.value.code == EXIT_IO_ERROR
