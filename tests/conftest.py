"""
tests/conftest.py
Shared fixtures for the tiergen test suite.

No external mocking libraries are used; real file I/O is performed
inside temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict

import pytest
import yaml

from tiergen.descriptors import EntityDescriptor, describe_table
from tiergen.models import Column, GenerationConfig, Table


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session and return as dict."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the schema dict to a temporary YAML file and return its path."""
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


@pytest.fixture()
def minimal_schema_dict() -> Dict[str, Any]:
    """Smallest useful input: one identity-keyed table."""
    return {
        "config": {
            "database_name": "Shop",
            "target_namespace": "Shop.Data",
        },
        "tables": [
            {
                "name": "Customer",
                "columns": [
                    {"name": "CustomerId", "type": "int", "nullable": False, "is_identity": True},
                    {"name": "Name", "type": "varchar", "length": 50, "nullable": False},
                    {"name": "Email", "type": "varchar", "length": 100},
                ],
                "primary_keys": ["CustomerId"],
            }
        ],
    }


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config() -> GenerationConfig:
    """Default settings: multi-file routing, no grants, ``Data`` DAO suffix."""
    return GenerationConfig(database_name="Shop", target_namespace="Shop.Data")


@pytest.fixture()
def grant_config() -> GenerationConfig:
    return GenerationConfig(
        database_name="Shop",
        target_namespace="Shop.Data",
        grant_login_name="shop_app",
    )


# ---------------------------------------------------------------------------
# Table fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_table() -> Table:
    """Identity primary key plus two character columns."""
    return Table(
        name="Customer",
        columns=[
            Column(name="CustomerId", type="int", nullable=False, is_identity=True),
            Column(name="Name", type="varchar", length=50, nullable=False),
            Column(name="Email", type="varchar", length=100),
        ],
        primary_keys=["CustomerId"],
    )


@pytest.fixture()
def order_line_table() -> Table:
    """Pure junction table: every column is in the key and in one FK group."""
    return Table(
        name="OrderLine",
        columns=[
            Column(name="OrderId", type="int", nullable=False),
            Column(name="LineNo", type="int", nullable=False),
        ],
        primary_keys=["OrderId", "LineNo"],
        foreign_keys={"FK_OrderLine_Order": ["OrderId", "LineNo"]},
    )


@pytest.fixture()
def counter_table() -> Table:
    """A single identity column and nothing else."""
    return Table(
        name="Counter",
        columns=[Column(name="Id", type="int", nullable=False, is_identity=True)],
        primary_keys=["Id"],
    )


@pytest.fixture()
def document_table() -> Table:
    """Row-guid primary key."""
    return Table(
        name="Document",
        columns=[
            Column(name="DocumentId", type="uniqueidentifier", nullable=False, is_row_guid_col=True),
            Column(name="Title", type="nvarchar", length=200, nullable=False),
            Column(name="CreatedDate", type="datetime"),
        ],
        primary_keys=["DocumentId"],
    )


@pytest.fixture()
def audit_log_table() -> Table:
    """Heap table without a primary key."""
    return Table(
        name="AuditLog",
        columns=[
            Column(name="Message", type="nvarchar", length=-1),
            Column(name="LoggedAt", type="datetime"),
        ],
    )


# ---------------------------------------------------------------------------
# Descriptor fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_entity(customer_table: Table, config: GenerationConfig) -> EntityDescriptor:
    return describe_table(customer_table, config)


@pytest.fixture()
def order_line_entity(order_line_table: Table, config: GenerationConfig) -> EntityDescriptor:
    return describe_table(order_line_table, config)


@pytest.fixture()
def counter_entity(counter_table: Table, config: GenerationConfig) -> EntityDescriptor:
    return describe_table(counter_table, config)


@pytest.fixture()
def document_entity(document_table: Table, config: GenerationConfig) -> EntityDescriptor:
    return describe_table(document_table, config)


@pytest.fixture()
def audit_log_entity(audit_log_table: Table, config: GenerationConfig) -> EntityDescriptor:
    return describe_table(audit_log_table, config)
