"""
tests/test_generator.py
End-to-end tests for tiergen.generator: loading, parsing, per-table
isolation, routing modes, idempotence and the manifest.
"""

from __future__ import annotations

import copy
import json
import pathlib
from typing import Any, Dict

import pytest
import yaml

from tiergen.errors import OutputPathError, SchemaInvariantViolation, UnrecognizedType
from tiergen.generator import (
    TierGenerator,
    generate_from_file,
    load_schema_file,
    parse_raw_schema,
)
from tiergen.models import Column, GenerationConfig, SchemaDefinition, Table


def _snapshot(root: pathlib.Path) -> Dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


def _bad_table() -> Table:
    return Table(name="Bad", columns=[Column(name="Blob", type="hyperblob")], primary_keys=["Blob"])


# ===========================================================================
# Loading and parsing
# ===========================================================================


class TestLoadSchemaFile:

    def test_yaml(self, schema_yaml_path: pathlib.Path) -> None:
        data = load_schema_file(schema_yaml_path)
        assert [t["name"] for t in data["tables"]] == ["Customer", "OrderLine"]

    def test_json(self, minimal_schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> None:
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(minimal_schema_dict), encoding="utf-8")
        assert load_schema_file(path)["tables"][0]["name"] == "Customer"

    def test_unknown_extension_falls_back_to_yaml(
        self, minimal_schema_dict: Dict[str, Any], tmp_path: pathlib.Path
    ) -> None:
        path = tmp_path / "schema.txt"
        path.write_text(yaml.safe_dump(minimal_schema_dict), encoding="utf-8")
        assert "tables" in load_schema_file(path)

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_schema_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("tables: [unclosed", encoding="utf-8")
        with pytest.raises(ValueError):
            load_schema_file(path)

    def test_top_level_must_be_mapping(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            load_schema_file(path)


class TestParseRawSchema:

    def test_example_schema(self, schema_dict: Dict[str, Any]) -> None:
        schema, config = parse_raw_schema(schema_dict, source_file="schema_example.yaml")
        assert schema.table_names == ["Customer", "OrderLine"]
        assert schema.source_file == "schema_example.yaml"
        assert config.database_name == "Shop"
        assert config.grants_enabled

    def test_overrides_win_and_none_is_ignored(self, minimal_schema_dict: Dict[str, Any]) -> None:
        _, config = parse_raw_schema(
            minimal_schema_dict,
            {"database_name": "Other", "target_namespace": None, "create_multiple_files": False},
        )
        assert config.database_name == "Other"
        assert config.target_namespace == "Shop.Data"
        assert not config.create_multiple_files

    def test_missing_tables(self) -> None:
        with pytest.raises(ValueError):
            parse_raw_schema({"config": {"database_name": "Shop", "target_namespace": "Shop"}})

    def test_missing_required_config(self, minimal_schema_dict: Dict[str, Any]) -> None:
        data = copy.deepcopy(minimal_schema_dict)
        del data["config"]["database_name"]
        with pytest.raises(ValueError):
            parse_raw_schema(data)

    def test_unknown_column_key(self, minimal_schema_dict: Dict[str, Any]) -> None:
        data = copy.deepcopy(minimal_schema_dict)
        data["tables"][0]["columns"][0]["autoincrement"] = True
        with pytest.raises(ValueError):
            parse_raw_schema(data)

    def test_duplicate_table_names(self, minimal_schema_dict: Dict[str, Any]) -> None:
        data = copy.deepcopy(minimal_schema_dict)
        data["tables"].append(copy.deepcopy(data["tables"][0]))
        with pytest.raises(ValueError):
            parse_raw_schema(data)

    def test_camel_case_aliases(self) -> None:
        schema, _ = parse_raw_schema({
            "config": {"database_name": "Shop", "target_namespace": "Shop"},
            "tables": [{
                "name": "T",
                "columns": [{"name": "Id", "type": "int", "isIdentity": True}],
                "primaryKeys": ["Id"],
            }],
        })
        assert schema.tables[0].columns[0].is_identity
        assert schema.tables[0].primary_keys == ["Id"]


# ===========================================================================
# render_table
# ===========================================================================


class TestRenderTable:

    def test_multi_file_layout(self, config: GenerationConfig, customer_table: Table) -> None:
        rendered = TierGenerator(config).render_table(customer_table)
        assert "InsertSPs/CustomerInsert.sql" in rendered.files
        assert "Models/Customer.cs" in rendered.files
        assert "Repositories/CustomerData.cs" in rendered.files
        assert "WebAPI/CustomerData.cs" in rendered.files
        assert "FrontEndAngular/CustomerData.ts" in rendered.files
        assert "FrontEndAngularHTML/CustomerData.html" in rendered.files
        assert "Dapper/CustomerData.cs" in rendered.files
        assert "FormClasses/CustomerData.cs" in rendered.files
        assert len(rendered.procedures) == 7

    def test_single_file_mode_keeps_procedures_out_of_files(self, customer_table: Table) -> None:
        config = GenerationConfig(database_name="Shop", target_namespace="Shop", create_multiple_files=False)
        rendered = TierGenerator(config).render_table(customer_table)
        assert not any(path.endswith(".sql") for path in rendered.files)
        assert len(rendered.procedures) == 7

    def test_artifact_selection(self, customer_table: Table) -> None:
        config = GenerationConfig(database_name="Shop", target_namespace="Shop", artifacts=["dto", "dao"])
        rendered = TierGenerator(config).render_table(customer_table)
        assert sorted(rendered.files) == ["Models/Customer.cs", "Repositories/CustomerData.cs"]
        assert rendered.procedures == []

    def test_unrecognized_type(self, config: GenerationConfig) -> None:
        with pytest.raises(UnrecognizedType) as exc_info:
            TierGenerator(config).render_table(_bad_table())
        assert exc_info.value.type_token == "hyperblob"

    def test_invariant_violation(self, config: GenerationConfig) -> None:
        table = Table(
            name="Twice",
            columns=[
                Column(name="A", type="int", is_identity=True),
                Column(name="B", type="int", is_identity=True),
            ],
            primary_keys=["A"],
        )
        with pytest.raises(SchemaInvariantViolation) as exc_info:
            TierGenerator(config).render_table(table)
        assert exc_info.value.table == "Twice"

    def test_space_in_column_name_fails_the_table(self, config: GenerationConfig) -> None:
        table = Table(
            name="Orders",
            columns=[
                Column(name="OrderId", type="int", nullable=False, is_identity=True),
                Column(name="Order Date", type="datetime"),
            ],
            primary_keys=["OrderId"],
        )
        with pytest.raises(SchemaInvariantViolation) as exc_info:
            TierGenerator(config).render_table(table)
        assert "Order Date" in str(exc_info.value)

    def test_heap_table_has_no_dapper_repository(self, config: GenerationConfig, audit_log_table: Table) -> None:
        rendered = TierGenerator(config).render_table(audit_log_table)
        assert "Dapper/AuditLogData.cs" not in rendered.files
        assert "FormClasses/AuditLogData.cs" in rendered.files

    def test_warnings_are_carried(self, config: GenerationConfig, audit_log_table: Table) -> None:
        rendered = TierGenerator(config).render_table(audit_log_table)
        assert any("no primary key" in w for w in rendered.warnings)


# ===========================================================================
# generate
# ===========================================================================


class TestGenerate:

    def test_writes_every_artifact(
        self, config: GenerationConfig, customer_table: Table, order_line_table: Table, tmp_path: pathlib.Path
    ) -> None:
        schema = SchemaDefinition(tables=[customer_table, order_line_table])
        report = TierGenerator(config).generate(schema, tmp_path)
        assert report.success, report.summary()
        assert report.result.succeeded_tables == ["Customer", "OrderLine"]
        assert (tmp_path / "InsertSPs" / "CustomerInsert.sql").exists()
        assert (tmp_path / "DeleteAllBySPs" / "OrderLineDeleteAllByOrderId_LineNo.sql").exists()
        assert (tmp_path / "Models" / "OrderLine.cs").exists()
        assert (tmp_path / "manifest.json").exists()
        assert not (tmp_path / "StoredProcedures.sql").exists()
        assert not (tmp_path / "GrantUserPermissions.sql").exists()

    def test_is_idempotent(
        self, config: GenerationConfig, customer_table: Table, order_line_table: Table, tmp_path: pathlib.Path
    ) -> None:
        schema = SchemaDefinition(tables=[customer_table, order_line_table])
        TierGenerator(config).generate(schema, tmp_path)
        first = _snapshot(tmp_path)
        TierGenerator(config).generate(schema, tmp_path)
        assert _snapshot(tmp_path) == first

    def test_shared_script_is_rebuilt(
        self, customer_table: Table, order_line_table: Table, tmp_path: pathlib.Path
    ) -> None:
        config = GenerationConfig(database_name="Shop", target_namespace="Shop", create_multiple_files=False)
        generator = TierGenerator(config)
        generator.generate(SchemaDefinition(tables=[customer_table, order_line_table]), tmp_path)
        shared = tmp_path / "StoredProcedures.sql"
        assert "OrderLineInsert" in shared.read_text(encoding="utf-8")

        report = generator.generate(SchemaDefinition(tables=[customer_table]), tmp_path)
        text = shared.read_text(encoding="utf-8")
        assert report.success
        assert "OrderLineInsert" not in text
        assert text.count("create procedure [dbo].[CustomerInsert]") == 1
        assert "StoredProcedures.sql" in report.result.shared_files
        assert not (tmp_path / "InsertSPs").exists()

    def test_grant_script(
        self, grant_config: GenerationConfig, customer_table: Table, tmp_path: pathlib.Path
    ) -> None:
        report = TierGenerator(grant_config).generate(SchemaDefinition(tables=[customer_table]), tmp_path)
        assert "GrantUserPermissions.sql" in report.result.shared_files
        insert = (tmp_path / "InsertSPs" / "CustomerInsert.sql").read_text(encoding="utf-8")
        assert "grant execute on [dbo].[CustomerInsert] to [shop_app]" in insert

    def test_failed_table_is_isolated(
        self, config: GenerationConfig, customer_table: Table, tmp_path: pathlib.Path
    ) -> None:
        schema = SchemaDefinition(tables=[_bad_table(), customer_table])
        report = TierGenerator(config).generate(schema, tmp_path)
        assert not report.success
        assert report.result.failed_tables == ["Bad"]
        assert report.result.succeeded_tables == ["Customer"]
        assert "hyperblob" in report.result.get("Bad").errors[0]
        assert not (tmp_path / "Models" / "Bad.cs").exists()
        assert (tmp_path / "Models" / "Customer.cs").exists()

    def test_failed_table_left_out_of_shared_script(self, customer_table: Table, tmp_path: pathlib.Path) -> None:
        config = GenerationConfig(database_name="Shop", target_namespace="Shop", create_multiple_files=False)
        report = TierGenerator(config).generate(SchemaDefinition(tables=[customer_table, _bad_table()]), tmp_path)
        text = (tmp_path / "StoredProcedures.sql").read_text(encoding="utf-8")
        assert "CustomerInsert" in text
        assert "BadInsert" not in text
        assert report.result.get("Bad").procedures == []

    def test_fail_fast_skips_remaining(
        self, config: GenerationConfig, customer_table: Table, order_line_table: Table, tmp_path: pathlib.Path
    ) -> None:
        schema = SchemaDefinition(tables=[_bad_table(), customer_table, order_line_table])
        report = TierGenerator(config, fail_fast=True).generate(schema, tmp_path)
        assert not report.success
        assert report.skipped_tables == ["Customer", "OrderLine"]
        assert [r.table for r in report.result.tables] == ["Bad"]
        assert not (tmp_path / "Models" / "Customer.cs").exists()

    def test_config_errors_stop_before_writing(self, customer_table: Table, tmp_path: pathlib.Path) -> None:
        config = GenerationConfig(database_name="Shop", target_namespace="1Shop")
        out = tmp_path / "out"
        report = TierGenerator(config).generate(SchemaDefinition(tables=[customer_table]), out)
        assert not report.success
        assert report.validation_errors
        assert not out.exists()

    def test_clean_output(self, config: GenerationConfig, customer_table: Table, tmp_path: pathlib.Path) -> None:
        (tmp_path / "stale.sql").write_text("old", encoding="utf-8")
        TierGenerator(config, clean_output=True).generate(SchemaDefinition(tables=[customer_table]), tmp_path)
        assert not (tmp_path / "stale.sql").exists()

    def test_unusable_output_root(self, config: GenerationConfig, customer_table: Table, tmp_path: pathlib.Path) -> None:
        root = tmp_path / "file"
        root.write_text("x", encoding="utf-8")
        with pytest.raises(OutputPathError):
            TierGenerator(config).generate(SchemaDefinition(tables=[customer_table]), root)

    def test_manifest_lists_written_files(
        self, config: GenerationConfig, customer_table: Table, tmp_path: pathlib.Path
    ) -> None:
        report = TierGenerator(config).generate(SchemaDefinition(tables=[customer_table]), tmp_path)
        data = json.loads((tmp_path / "manifest.json").read_text(encoding="utf-8"))
        paths = [f["relative_path"] for f in data["files"]]
        assert paths == sorted(paths)
        assert "manifest.json" not in paths
        assert "Models/Customer.cs" in paths
        assert report.manifest is not None
        assert report.manifest.total_files == len(paths)
        assert report.result.shared_files == ["manifest.json"]

    def test_summary(self, config: GenerationConfig, customer_table: Table, tmp_path: pathlib.Path) -> None:
        report = TierGenerator(config).generate(SchemaDefinition(tables=[customer_table, _bad_table()]), tmp_path)
        summary = report.summary()
        assert "FAILED" in summary
        assert "Customer" in summary
        assert "hyperblob" in summary


class TestGenerateFromFile:

    def test_example_schema(self, schema_yaml_path: pathlib.Path, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "generated"
        report = generate_from_file(schema_yaml_path, {"output_dir": str(out)})
        assert report.success, report.summary()
        assert (out / "GrantUserPermissions.sql").exists()
        assert (out / "UpdateSPs" / "OrderLineUpdate.sql").exists()
        assert (out / "FrontEndAngularHTML" / "OrderLineData.html").exists()
