# File: tiergen/procedures.py
"""
tiergen - Stored Procedure Emitter
==================================
Renders the SQL Server stored procedures for one table from its
``EntityDescriptor``.

Shapes (in emission order):

* ``Save``: insert / update / delete in one call, selected by ``@InsMode``.
* ``Upsert``: ``@Action = 1`` updates an existing row or inserts a new one,
  ``@Action = 2`` deletes; reports the outcome in ``@Status``.
* ``Insert``, ``Update``, ``Delete``, ``DeleteAllBy<Keys>``, ``Select``,
  ``SelectAll``, ``SelectAllBy<Keys>``.

``Update`` is skipped for pure-key and pure-junction tables, ``Delete`` and
``Upsert`` for tables without a primary key, and ``Select`` / ``SelectAll``
for tables whose every column is a foreign key.  The ``...AllBy...`` pair is
emitted once per foreign key group.

Routing (one file per procedure or one shared script) and the trailing grant
are policy; they never change the procedure text itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from tiergen.descriptors import EntityDescriptor, FieldDescriptor, ForeignKeyGroup
from tiergen.models import GenerationConfig, ProcedureShape
from tiergen.utils import indent_lines, join_lines, pascal_name

logger: logging.Logger = logging.getLogger("tiergen.procedures")

SHARED_SCRIPT_NAME: str = "StoredProcedures.sql"
GRANT_SCRIPT_NAME: str = "GrantUserPermissions.sql"

_SEPARATOR: List[str] = [
    "",
    "/******************************************************************************",
    "******************************************************************************/",
]

_SHAPE_DIRECTORIES: Dict[ProcedureShape, str] = {
    shape: f"{shape.value}SPs" for shape in ProcedureShape
}


@dataclass(frozen=True, slots=True)
class Procedure:
    """One rendered procedure, before routing."""

    shape: ProcedureShape
    name: str
    table: str
    lines: List[str]

    @property
    def text(self) -> str:
        return join_lines(self.lines)


# ---------------------------------------------------------------------------
# Clause fragments
# ---------------------------------------------------------------------------


def _comma_list(items: Sequence[str], prefix: str = "\t") -> List[str]:
    """``prefix + item`` lines, comma-terminated except the last."""
    last: int = len(items) - 1
    return [f"{prefix}{item}{',' if i < last else ''}" for i, item in enumerate(items)]


def _where(fields: Sequence[FieldDescriptor], keyword: str = "where") -> List[str]:
    """Equality filter over *fields* joined by ``and``, in key order."""
    lines: List[str] = []
    for i, field in enumerate(fields):
        if i == 0:
            lines.append(f"{keyword} {field.sql_assignment}")
        else:
            lines.append(f"\tand {field.sql_assignment}")
    return lines


def _set(fields: Sequence[FieldDescriptor], keyword: str = "set") -> List[str]:
    lines: List[str] = []
    last: int = len(fields) - 1
    for i, field in enumerate(fields):
        lead: str = f"{keyword} " if i == 0 else "\t"
        lines.append(f"{lead}{field.sql_assignment}{',' if i < last else ''}")
    return lines


def _insert(
    table: str,
    columns: Sequence[FieldDescriptor],
    values: Sequence[str],
    keywords: Sequence[str] = ("insert into", "values"),
) -> List[str]:
    if not columns:
        return [f"{keywords[0]} [{table}] default values"]
    return (
        [f"{keywords[0]} [{table}]", "("]
        + _comma_list([c.sql_name for c in columns])
        + [")", keywords[1], "("]
        + _comma_list(values)
        + [")"]
    )


def _drop_if_exists(name: str) -> List[str]:
    return [
        "if exists (select * from dbo.sysobjects where id = object_id(N'[dbo]."
        f"[{name}]') and ObjectProperty(id, N'IsProcedure') = 1)",
        f"\tdrop procedure [dbo].[{name}]",
        "go",
        "",
    ]


def _header(name: str, parameters: Sequence[str]) -> List[str]:
    """Drop guard, ``create procedure`` and parameter block."""
    lines: List[str] = _drop_if_exists(name) + [f"create procedure [dbo].[{name}]"]
    if parameters:
        lines += ["("] + _comma_list(parameters) + [")"]
    return lines + ["", "as", "", "set nocount on", ""]


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------


class ProcedureEmitter:
    """
    Renders every procedure shape for a table.

    Usage::

        emitter = ProcedureEmitter(config)
        for proc in emitter.build(entity):
            files[emitter.relative_path(proc)] = emitter.render_file(proc)
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._prefix: str = config.stored_procedure_prefix

    # -- Naming -------------------------------------------------------------

    def procedure_name(
        self,
        entity: EntityDescriptor,
        shape: ProcedureShape,
        group: Optional[ForeignKeyGroup] = None,
    ) -> str:
        if shape is ProcedureShape.SAVE:
            return f"{self._prefix}{pascal_name(entity.table_name)}Save"
        if shape is ProcedureShape.UPSERT:
            return f"{self._prefix}SP_Save_{entity.table_name}"
        if shape in (ProcedureShape.DELETE_ALL_BY, ProcedureShape.SELECT_ALL_BY):
            if group is None:
                raise ValueError(f"{shape.value} needs a foreign key group.")
            return f"{self._prefix}{entity.table_name}{shape.value}{group.name_suffix}"
        return f"{self._prefix}{entity.table_name}{shape.value}"

    # -- Build --------------------------------------------------------------

    def build(self, entity: EntityDescriptor) -> List[Procedure]:
        """All procedures for *entity*, in emission order."""
        procedures: List[Procedure] = [self.save(entity)]
        if entity.emits_upsert:
            procedures.append(self.upsert(entity))
        procedures.append(self.insert(entity))
        if entity.emits_update:
            procedures.append(self.update(entity))
        if entity.emits_delete:
            procedures.append(self.delete(entity))
        for group in entity.foreign_key_groups:
            procedures.append(self.delete_all_by(entity, group))
        if entity.emits_select:
            procedures.append(self.select(entity))
            procedures.append(self.select_all(entity))
        for group in entity.foreign_key_groups:
            procedures.append(self.select_all_by(entity, group))

        logger.debug(
            "Built %d procedures for %s: %s",
            len(procedures),
            entity.table_name,
            ", ".join(p.name for p in procedures),
        )
        return procedures

    def _finish(
        self, shape: ProcedureShape, name: str, entity: EntityDescriptor, lines: List[str]
    ) -> Procedure:
        if self._config.grants_enabled:
            lines = lines + [
                "",
                f"grant execute on [dbo].[{name}] to [{self._config.grant_login_name}]",
                "go",
            ]
        return Procedure(shape=shape, name=name, table=entity.table_name, lines=lines)

    # -- Shapes -------------------------------------------------------------

    def insert(self, entity: EntityDescriptor) -> Procedure:
        name: str = self.procedure_name(entity, ProcedureShape.INSERT)
        lines: List[str] = _header(name, [f.sql_parameter for f in entity.user_fields])

        row_guid: Optional[FieldDescriptor] = entity.row_guid_field
        if row_guid is not None:
            lines += [
                f"declare {row_guid.sql_variable} {row_guid.sql_type}",
                f"set {row_guid.sql_variable} = NewID()",
                "",
            ]

        columns: List[FieldDescriptor] = [f for f in entity.fields if not f.is_identity]
        lines += _insert(entity.table_name, columns, [f.sql_variable for f in columns])

        if entity.identity_field is not None:
            lines += ["", "select scope_identity()"]
        elif row_guid is not None:
            lines += ["", f"select {row_guid.sql_variable}"]
        lines.append("go")
        return self._finish(ProcedureShape.INSERT, name, entity, lines)

    def update(self, entity: EntityDescriptor) -> Procedure:
        name: str = self.procedure_name(entity, ProcedureShape.UPDATE)
        lines: List[str] = _header(name, [f.sql_parameter for f in entity.fields])
        lines += [f"update [{entity.table_name}]"]
        lines += _set(entity.non_key_fields)
        lines += _where(entity.primary_keys)
        lines.append("go")
        return self._finish(ProcedureShape.UPDATE, name, entity, lines)

    def delete(self, entity: EntityDescriptor) -> Procedure:
        name: str = self.procedure_name(entity, ProcedureShape.DELETE)
        lines: List[str] = _header(name, [f.sql_parameter for f in entity.primary_keys])
        lines += [f"delete from [{entity.table_name}]"]
        lines += _where(entity.primary_keys)
        lines.append("go")
        return self._finish(ProcedureShape.DELETE, name, entity, lines)

    def _select_lines(self, entity: EntityDescriptor, filter_fields: Sequence[FieldDescriptor]) -> List[str]:
        columns: List[str] = [f.sql_name for f in entity.fields]
        lines: List[str] = []
        last: int = len(columns) - 1
        for i, column in enumerate(columns):
            lead: str = "select " if i == 0 else "\t"
            lines.append(f"{lead}{column}{',' if i < last else ''}")
        lines.append(f"from [{entity.table_name}]")
        lines += _where(filter_fields)
        lines.append("go")
        return lines

    def select(self, entity: EntityDescriptor) -> Procedure:
        name: str = self.procedure_name(entity, ProcedureShape.SELECT)
        lines: List[str] = _header(name, [f.sql_parameter for f in entity.primary_keys])
        lines += self._select_lines(entity, entity.primary_keys)
        return self._finish(ProcedureShape.SELECT, name, entity, lines)

    def select_all(self, entity: EntityDescriptor) -> Procedure:
        name: str = self.procedure_name(entity, ProcedureShape.SELECT_ALL)
        lines: List[str] = _header(name, [])
        lines += self._select_lines(entity, [])
        return self._finish(ProcedureShape.SELECT_ALL, name, entity, lines)

    def delete_all_by(self, entity: EntityDescriptor, group: ForeignKeyGroup) -> Procedure:
        name: str = self.procedure_name(entity, ProcedureShape.DELETE_ALL_BY, group)
        lines: List[str] = _header(name, [f.sql_parameter for f in group.fields])
        lines += [f"delete from [{entity.table_name}]"]
        lines += _where(group.fields)
        lines.append("go")
        return self._finish(ProcedureShape.DELETE_ALL_BY, name, entity, lines)

    def select_all_by(self, entity: EntityDescriptor, group: ForeignKeyGroup) -> Procedure:
        name: str = self.procedure_name(entity, ProcedureShape.SELECT_ALL_BY, group)
        lines: List[str] = _header(name, [f.sql_parameter for f in group.fields])
        lines += self._select_lines(entity, group.fields)
        return self._finish(ProcedureShape.SELECT_ALL_BY, name, entity, lines)

    def save(self, entity: EntityDescriptor) -> Procedure:
        """
        Combined insert / update / delete procedure targeted by the DAO.

        Parameters are the user-supplied columns plus ``@InsMode`` and
        ``@RtnValue``.  Update and delete branches are only rendered when the
        table has a primary key to filter on.
        """
        name: str = self.procedure_name(entity, ProcedureShape.SAVE)
        table: str = entity.table_name
        parameters: List[str] = [f.sql_parameter for f in entity.user_fields]
        parameters += ["@InsMode int", "@RtnValue int output"]

        lines: List[str] = [
            "SET ANSI_NULLS ON",
            "GO",
            "SET QUOTED_IDENTIFIER ON",
            "GO",
            "/******************************************************************************",
            f"-- Saves a row of [{table}].",
            "-- @InsMode = 1 inserts, @InsMode = 3 updates, any other value deletes.",
            "-- @RtnValue returns 1 when the transaction commits.",
            "******************************************************************************/",
        ]
        lines += _drop_if_exists(name)
        lines += [f"CREATE PROCEDURE [dbo].[{name}]"]
        lines += _comma_list(parameters)
        lines += [
            "AS",
            "BEGIN",
            "SET NOCOUNT ON",
            "BEGIN TRANSACTION T1",
            "--****************Insert the Record***********************",
            "if @InsMode = 1",
            "begin",
        ]
        columns: List[FieldDescriptor] = [f for f in entity.fields if not f.is_identity]
        values: List[str] = ["NewID()" if f.is_row_guid else f.sql_variable for f in columns]
        lines += _insert(table, columns, values)
        lines += ["if @@error <> 0 goto Err_Desc", "end"]

        updatable: List[FieldDescriptor] = [f for f in entity.non_key_fields if f.is_user_supplied]
        if entity.has_primary_key and updatable:
            lines += [
                "--****************Update the Record***********************",
                "else if @InsMode = 3",
                "begin",
                f"update [{table}]",
            ]
            lines += _set(updatable)
            lines += _where(entity.primary_keys)
            lines += ["if @@error <> 0 goto Err_Desc", "end"]
        if entity.has_primary_key:
            lines += [
                "--****************Delete the Record***********************",
                "else",
                "begin",
                f"delete from [{table}]",
            ]
            lines += _where(entity.primary_keys)
            lines += ["if @@error <> 0 goto Err_Desc", "end"]

        lines += [
            "Set @RtnValue = 1",
            "COMMIT TRANSACTION T1",
            "RETURN",
            "Err_Desc:",
            "ROLLBACK TRANSACTION T1",
            "Set @RtnValue = 0",
            "END",
            "GO",
        ]
        return self._finish(ProcedureShape.SAVE, name, entity, lines)

    def upsert(self, entity: EntityDescriptor) -> Procedure:
        """
        Update-or-insert procedure driven by ``@Action``.

        Identity and row-guid columns are ``output`` parameters: they carry
        the key in for updates and deletes and the generated value out after
        an insert.  ``@Status`` is 1 inserted, 2 updated, 3 deleted, -3
        nothing deleted, -1 error.
        """
        name: str = self.procedure_name(entity, ProcedureShape.UPSERT)
        table: str = entity.table_name
        parameters: List[str] = [f.sql_output_parameter for f in entity.fields]
        parameters += ["@Action int", "@Status int output"]

        matched: List[str] = []
        updatable: List[FieldDescriptor] = list(
            f for f in entity.non_key_fields if not f.is_identity
        )
        if updatable:
            matched = [f"UPDATE [{table}]"] + _set(updatable, "SET") + _where(entity.primary_keys, "WHERE")
        matched.append("SET @StatusIn = 2")

        columns: List[FieldDescriptor] = [f for f in entity.fields if not f.is_identity]
        inserted: List[str] = []
        row_guid: Optional[FieldDescriptor] = entity.row_guid_field
        if row_guid is not None:
            inserted.append(f"SET {row_guid.sql_variable} = NewID()")
        inserted += _insert(table, columns, [f.sql_variable for f in columns], ("INSERT INTO", "VALUES"))
        if entity.identity_field is not None:
            inserted.append(f"SET {entity.identity_field.sql_variable} = SCOPE_IDENTITY()")
        inserted.append("SET @StatusIn = 1")

        exists: str = " AND ".join(f.sql_assignment for f in entity.primary_keys)
        action_one: List[str] = (
            [f"IF EXISTS (SELECT * FROM [{table}] WHERE {exists})", "BEGIN"]
            + indent_lines(matched, unit="\t")
            + ["END", "ELSE", "BEGIN"]
            + indent_lines(inserted, unit="\t")
            + ["END"]
        )
        action_two: List[str] = (
            [f"DELETE FROM [{table}]"]
            + _where(entity.primary_keys, "WHERE")
            + ["IF @@ROWCOUNT > 0", "\tSET @StatusIn = 3", "ELSE", "\tSET @StatusIn = -3"]
        )
        body: List[str] = (
            ["BEGIN TRANSACTION", "IF @Action = 1", "BEGIN"]
            + indent_lines(action_one, unit="\t")
            + ["END", "ELSE IF @Action = 2", "BEGIN"]
            + indent_lines(action_two, unit="\t")
            + ["END", "COMMIT TRANSACTION", "SET @Status = @StatusIn"]
        )
        handler: List[str] = [
            "IF @@TRANCOUNT > 0",
            "\tROLLBACK TRANSACTION",
            "SET @Status = -1",
            "SELECT",
            "\tERROR_NUMBER() AS ErrorNumber,",
            "\tERROR_SEVERITY() AS ErrorSeverity,",
            "\tERROR_STATE() AS ErrorState,",
            "\tERROR_PROCEDURE() AS ErrorProcedure,",
            "\tERROR_LINE() AS ErrorLine,",
            "\tERROR_MESSAGE() AS ErrorMessage",
        ]

        lines: List[str] = [
            "SET ANSI_NULLS ON",
            "GO",
            "SET QUOTED_IDENTIFIER ON",
            "GO",
            "/*",
            "-----------------------------------------------------",
            "INPUTS",
            "-----------------------------------------------------",
            "- PASS @Action = 1 TO INSERT OR UPDATE",
            "- PASS @Action = 2 TO DELETE",
            "-----------------------------------------------------",
            "OUTPUTS",
            "-----------------------------------------------------",
            "@Status RETURNS 1 WHEN RECORD INSERTED",
            "@Status RETURNS 2 WHEN RECORD UPDATED",
            "@Status RETURNS 3 WHEN RECORD(S) DELETED",
            "@Status RETURNS -3 WHEN NO RECORD WAS DELETED",
            "@Status RETURNS -1 WHEN AN ERROR OCCURRED",
            "*/",
        ]
        lines += _drop_if_exists(name)
        lines += [f"CREATE PROCEDURE [dbo].[{name}]"]
        lines += _comma_list(parameters)
        lines += ["AS", "BEGIN", "\tSET NOCOUNT ON", "\tDECLARE @StatusIn int", "\tSET @StatusIn = 0"]
        lines += ["\tBEGIN TRY"] + indent_lines(body, 2, "\t") + ["\tEND TRY"]
        lines += ["\tBEGIN CATCH"] + indent_lines(handler, 2, "\t") + ["\tEND CATCH"]
        lines += ["END", "GO"]
        return self._finish(ProcedureShape.UPSERT, name, entity, lines)

    # -- Routing ------------------------------------------------------------

    def use_database(self) -> List[str]:
        return [f"use [{self._config.database_name}]", "go", ""]

    def relative_path(self, procedure: Procedure) -> str:
        return f"{_SHAPE_DIRECTORIES[procedure.shape]}/{procedure.name}.sql"

    def render_file(self, procedure: Procedure) -> str:
        """Stand-alone script for one procedure."""
        return join_lines(self.use_database() + procedure.lines)

    def render_shared(self, procedures: Sequence[Procedure]) -> str:
        """
        The shared script: ``use`` once, then every procedure in the order
        given, each behind a separator block.
        """
        lines: List[str] = [f"use [{self._config.database_name}]", "go"]
        for procedure in procedures:
            lines += _SEPARATOR + procedure.lines
        return join_lines(lines)

    def grant_script(self) -> str:
        """Create the grant login and give it access to the database."""
        login: str = self._config.grant_login_name
        database: str = self._config.database_name
        lines: List[str] = [
            "use [master]",
            "go",
            "",
            f"if not exists (select * from dbo.syslogins where loginname = N'{login}')",
            "begin",
            f"\texec sp_grantlogin N'{login}'",
            f"\texec sp_defaultdb N'{login}', N'{database}'",
            f"\texec sp_defaultlanguage N'{login}', N'us_english'",
            "end",
            "go",
            "",
            f"use [{database}]",
            "go",
            "",
            f"if not exists (select * from dbo.sysusers where name = N'{login}')",
            "begin",
            f"\texec sp_grantdbaccess N'{login}', N'{login}'",
            "end",
            "go",
        ]
        return join_lines(lines)


__all__: List[str] = [
    "SHARED_SCRIPT_NAME",
    "GRANT_SCRIPT_NAME",
    "Procedure",
    "ProcedureEmitter",
]
