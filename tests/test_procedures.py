"""
tests/test_procedures.py
Tests for tiergen.procedures: procedure shapes, naming, guards, routing
and grants.
"""

from __future__ import annotations

import textwrap
from typing import Dict, List

import pytest

from tiergen.descriptors import EntityDescriptor, describe_table
from tiergen.models import GenerationConfig, ProcedureShape, Table
from tiergen.procedures import Procedure, ProcedureEmitter


def _by_shape(procedures: List[Procedure]) -> Dict[ProcedureShape, Procedure]:
    return {p.shape: p for p in procedures}


@pytest.fixture()
def emitter(config: GenerationConfig) -> ProcedureEmitter:
    return ProcedureEmitter(config)


# ===========================================================================
# Naming and emission order
# ===========================================================================


class TestProcedureSet:

    def test_regular_table_order(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        names = [p.name for p in emitter.build(customer_entity)]
        assert names == [
            "CustomerSave",
            "SP_Save_Customer",
            "CustomerInsert",
            "CustomerUpdate",
            "CustomerDelete",
            "CustomerSelect",
            "CustomerSelectAll",
        ]

    def test_junction_table_skips_update_and_select(
        self, emitter: ProcedureEmitter, order_line_entity: EntityDescriptor
    ) -> None:
        names = [p.name for p in emitter.build(order_line_entity)]
        assert names == [
            "OrderLineSave",
            "SP_Save_OrderLine",
            "OrderLineInsert",
            "OrderLineDelete",
            "OrderLineDeleteAllByOrderId_LineNo",
            "OrderLineSelectAllByOrderId_LineNo",
        ]

    def test_heap_table_only_gets_save_and_insert(
        self, emitter: ProcedureEmitter, audit_log_entity: EntityDescriptor
    ) -> None:
        shapes = [p.shape for p in emitter.build(audit_log_entity)]
        assert shapes == [ProcedureShape.SAVE, ProcedureShape.INSERT]

    def test_prefix_applies_to_every_shape(self, customer_table: Table) -> None:
        config = GenerationConfig(database_name="Shop", target_namespace="Shop", stored_procedure_prefix="usp_")
        emitter = ProcedureEmitter(config)
        names = [p.name for p in emitter.build(describe_table(customer_table, config))]
        assert names[:3] == ["usp_CustomerSave", "usp_SP_Save_Customer", "usp_CustomerInsert"]
        assert all(n.startswith("usp_") for n in names)

    def test_group_shapes_need_a_group(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        with pytest.raises(ValueError):
            emitter.procedure_name(customer_entity, ProcedureShape.SELECT_ALL_BY)


# ===========================================================================
# Shape bodies
# ===========================================================================


class TestInsert:

    def test_identity_table(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        expected = textwrap.dedent(
            """\
            if exists (select * from dbo.sysobjects where id = object_id(N'[dbo].[CustomerInsert]') and ObjectProperty(id, N'IsProcedure') = 1)
            \tdrop procedure [dbo].[CustomerInsert]
            go

            create procedure [dbo].[CustomerInsert]
            (
            \t@Name varchar(50),
            \t@Email varchar(100)
            )

            as

            set nocount on

            insert into [Customer]
            (
            \t[Name],
            \t[Email]
            )
            values
            (
            \t@Name,
            \t@Email
            )

            select scope_identity()
            go
            """
        )
        assert emitter.insert(customer_entity).text == expected

    def test_identity_only_table_uses_default_values(
        self, emitter: ProcedureEmitter, counter_entity: EntityDescriptor
    ) -> None:
        lines = emitter.insert(counter_entity).lines
        assert "create procedure [dbo].[CounterInsert]" in lines
        assert "(" not in lines
        assert "insert into [Counter] default values" in lines
        assert "select scope_identity()" in lines

    def test_row_guid_is_generated(self, emitter: ProcedureEmitter, document_entity: EntityDescriptor) -> None:
        lines = emitter.insert(document_entity).lines
        assert "\t@DocumentId uniqueidentifier," not in lines
        assert "declare @DocumentId uniqueidentifier" in lines
        assert "set @DocumentId = NewID()" in lines
        assert "\t[DocumentId]," in lines
        assert lines[-2] == "select @DocumentId"

    def test_max_length_parameter(self, emitter: ProcedureEmitter, audit_log_entity: EntityDescriptor) -> None:
        lines = emitter.insert(audit_log_entity).lines
        assert "\t@Message nvarchar(max)," in lines


class TestUpdateDeleteSelect:

    def test_update(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        lines = emitter.update(customer_entity).lines
        assert "\t@CustomerId int," in lines
        tail = lines[lines.index("update [Customer]"):]
        assert tail == [
            "update [Customer]",
            "set [Name] = @Name,",
            "\t[Email] = @Email",
            "where [CustomerId] = @CustomerId",
            "go",
        ]

    def test_composite_delete(self, emitter: ProcedureEmitter, order_line_entity: EntityDescriptor) -> None:
        lines = emitter.delete(order_line_entity).lines
        tail = lines[lines.index("delete from [OrderLine]"):]
        assert tail == [
            "delete from [OrderLine]",
            "where [OrderId] = @OrderId",
            "\tand [LineNo] = @LineNo",
            "go",
        ]

    def test_select(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        lines = emitter.select(customer_entity).lines
        tail = lines[lines.index("select [CustomerId],"):]
        assert tail == [
            "select [CustomerId],",
            "\t[Name],",
            "\t[Email]",
            "from [Customer]",
            "where [CustomerId] = @CustomerId",
            "go",
        ]

    def test_select_all_has_no_parameters(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        lines = emitter.select_all(customer_entity).lines
        assert "(" not in lines
        assert "from [Customer]" in lines
        assert not any(line.startswith("where") for line in lines)

    def test_select_all_by_group(self, emitter: ProcedureEmitter, order_line_entity: EntityDescriptor) -> None:
        group = order_line_entity.foreign_key_groups[0]
        proc = emitter.select_all_by(order_line_entity, group)
        assert proc.name == "OrderLineSelectAllByOrderId_LineNo"
        assert "\t@OrderId int," in proc.lines
        assert "\t@LineNo int" in proc.lines
        assert "\tand [LineNo] = @LineNo" in proc.lines


class TestSave:

    def test_parameters_and_branches(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        lines = emitter.save(customer_entity).lines
        start = lines.index("CREATE PROCEDURE [dbo].[CustomerSave]")
        assert lines[start + 1:start + 5] == [
            "\t@Name varchar(50),",
            "\t@Email varchar(100),",
            "\t@InsMode int,",
            "\t@RtnValue int output",
        ]
        assert "if @InsMode = 1" in lines
        assert "else if @InsMode = 3" in lines
        assert "set [Name] = @Name," in lines
        assert "delete from [Customer]" in lines
        assert lines[-1] == "GO"

    def test_row_guid_inserted_with_newid(self, emitter: ProcedureEmitter, document_entity: EntityDescriptor) -> None:
        lines = emitter.save(document_entity).lines
        assert "\tNewID()," in lines

    def test_heap_table_has_insert_branch_only(
        self, emitter: ProcedureEmitter, audit_log_entity: EntityDescriptor
    ) -> None:
        lines = emitter.save(audit_log_entity).lines
        assert "if @InsMode = 1" in lines
        assert "else if @InsMode = 3" not in lines
        assert "else" not in lines

    def test_identity_only_table_has_no_update_branch(
        self, emitter: ProcedureEmitter, counter_entity: EntityDescriptor
    ) -> None:
        lines = emitter.save(counter_entity).lines
        assert "insert into [Counter] default values" in lines
        assert "else if @InsMode = 3" not in lines
        assert "delete from [Counter]" in lines


class TestUpsert:

    def test_generated_columns_are_output(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        lines = emitter.upsert(customer_entity).lines
        assert "\t@CustomerId int output," in lines
        assert "\t@Action int," in lines
        assert "\t@Status int output" in lines

    def test_user_columns_are_plain_inputs(self, emitter: ProcedureEmitter, document_entity: EntityDescriptor) -> None:
        lines = emitter.upsert(document_entity).lines
        assert "\t@DocumentId uniqueidentifier output," in lines
        assert "\t@Title nvarchar(200)," in lines
        assert not any(line.startswith("\t@Title") and "output" in line for line in lines)

    def test_body(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        text = emitter.upsert(customer_entity).text
        assert "IF EXISTS (SELECT * FROM [Customer] WHERE [CustomerId] = @CustomerId)" in text
        assert "SET @CustomerId = SCOPE_IDENTITY()" in text
        assert "SET @StatusIn = 2" in text
        assert "SET @StatusIn = -3" in text
        assert "BEGIN CATCH" in text

    def test_row_guid_assigned_before_insert(self, emitter: ProcedureEmitter, document_entity: EntityDescriptor) -> None:
        text = emitter.upsert(document_entity).text
        assert "SET @DocumentId = NewID()" in text
        assert text.index("SET @DocumentId = NewID()") < text.index("INSERT INTO [Document]")


# ===========================================================================
# Routing and grants
# ===========================================================================


class TestRouting:

    def test_relative_paths(self, emitter: ProcedureEmitter, order_line_entity: EntityDescriptor) -> None:
        paths = [emitter.relative_path(p) for p in emitter.build(order_line_entity)]
        assert "SaveSPs/OrderLineSave.sql" in paths
        assert "UpsertSPs/SP_Save_OrderLine.sql" in paths
        assert "SelectAllBySPs/OrderLineSelectAllByOrderId_LineNo.sql" in paths

    def test_render_file_starts_with_use(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        text = emitter.render_file(emitter.insert(customer_entity))
        assert text.startswith("use [Shop]\ngo\n\nif exists")
        assert text.endswith("go\n")

    def test_render_shared_uses_database_once(
        self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor, order_line_entity: EntityDescriptor
    ) -> None:
        procedures = emitter.build(customer_entity) + emitter.build(order_line_entity)
        text = emitter.render_shared(procedures)
        assert text.count("use [Shop]") == 1
        assert text.index("CustomerInsert") < text.index("OrderLineInsert")

    def test_procedure_text_is_routing_independent(self, customer_table: Table) -> None:
        multi = GenerationConfig(database_name="Shop", target_namespace="Shop")
        single = GenerationConfig(database_name="Shop", target_namespace="Shop", create_multiple_files=False)
        a = ProcedureEmitter(multi).build(describe_table(customer_table, multi))
        b = ProcedureEmitter(single).build(describe_table(customer_table, single))
        assert [p.lines for p in a] == [p.lines for p in b]


class TestGrants:

    def test_no_grant_by_default(self, emitter: ProcedureEmitter, customer_entity: EntityDescriptor) -> None:
        assert not any("grant execute" in line for line in emitter.insert(customer_entity).lines)

    def test_grant_appended(self, grant_config: GenerationConfig, customer_table: Table) -> None:
        emitter = ProcedureEmitter(grant_config)
        proc = emitter.insert(describe_table(customer_table, grant_config))
        assert proc.lines[-2:] == ["grant execute on [dbo].[CustomerInsert] to [shop_app]", "go"]

    def test_grant_script(self, grant_config: GenerationConfig) -> None:
        text = ProcedureEmitter(grant_config).grant_script()
        assert "exec sp_grantlogin N'shop_app'" in text
        assert "exec sp_defaultdb N'shop_app', N'Shop'" in text
        assert "use [Shop]" in text
