# File: tiergen/datalayer.py
"""
tiergen - Data-Layer Emitter
============================
Renders the C# data-transfer class, the data-access class and the Dapper
repository for one table.

The data-access methods call the stored procedures rendered by
``tiergen.procedures`` and use the same procedure names and guards, so a
method is only generated when the procedure it calls exists.  Every method
body rethrows whatever it catches: error policy belongs to the application
that consumes the generated code.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from tiergen.descriptors import EntityDescriptor, FieldDescriptor, ForeignKeyGroup
from tiergen.models import GenerationConfig, ProcedureShape
from tiergen.procedures import ProcedureEmitter
from tiergen.utils import indent_lines, join_lines

logger: logging.Logger = logging.getLogger("tiergen.datalayer")

DTO_DIRECTORY: str = "Models"
DAO_DIRECTORY: str = "Repositories"
DAPPER_DIRECTORY: str = "Dapper"


def _summary(text: str) -> List[str]:
    return ["/// <summary>", f"/// {text}", "/// </summary>"]


def _rethrowing(body: Sequence[str]) -> List[str]:
    """Wrap *body* in ``try { ... } catch (Exception) { throw; }``."""
    return (
        ["try", "{"]
        + indent_lines(body, unit="\t")
        + ["}", "catch (Exception)", "{", "\tthrow;", "}"]
    )


def _method(signature: str, body: Sequence[str], doc: str) -> List[str]:
    return _summary(doc) + [signature, "{"] + indent_lines(_rethrowing(body), unit="\t") + ["}", ""]


def _sql_parameter(field: FieldDescriptor, value: str) -> str:
    """``new SqlParameter("@Col", SqlDbType.Int) { Value = value }``."""
    return f'new SqlParameter("{field.sql_variable}", SqlDbType.{field.db_type}) {{ Value = {value} }}'


def _bind(field: FieldDescriptor, value: str) -> str:
    """``scom.Parameters.Add("@Col", SqlDbType.VarChar, 50).Value = value;``."""
    size: str = f", {field.length}" if field.length else ""
    return f'scom.Parameters.Add("{field.sql_variable}", SqlDbType.{field.db_type}{size}).Value = {value};'


class DataLayerEmitter:
    """Renders ``Models/<Dto>.cs``, ``Repositories/<Dao>.cs`` and ``Dapper/<Dao>.cs``."""

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._procedures: ProcedureEmitter = ProcedureEmitter(config)

    # -- Paths --------------------------------------------------------------

    def dto_path(self, entity: EntityDescriptor) -> str:
        return f"{DTO_DIRECTORY}/{entity.dto_class}.cs"

    def dao_path(self, entity: EntityDescriptor) -> str:
        return f"{DAO_DIRECTORY}/{entity.dao_class}.cs"

    def dapper_path(self, entity: EntityDescriptor) -> str:
        return f"{DAPPER_DIRECTORY}/{entity.dao_class}.cs"

    # -- Data-transfer class --------------------------------------------------

    def _constructor(self, entity: EntityDescriptor, fields: Sequence[FieldDescriptor]) -> List[str]:
        arguments: str = ", ".join(f"{f.cs_type} {f.parameter_name}" for f in fields)
        lines: List[str] = _summary(f"Initializes a new instance of the {entity.dto_class} class.")
        lines += [f"public {entity.dto_class}({arguments})", "{"]
        lines += [f"\tthis.{f.property_name} = {f.parameter_name};" for f in fields]
        return lines + ["}", ""]

    def render_dto(self, entity: EntityDescriptor) -> str:
        members: List[str] = ["#region Constructors", ""]
        members += self._constructor(entity, [])
        if entity.user_fields and entity.has_partial_constructor:
            members += self._constructor(entity, entity.user_fields)
        members += self._constructor(entity, entity.fields)
        members += ["#endregion", "", "#region Properties", ""]
        for field in entity.fields:
            members += _summary(f"Gets or sets the {field.property_name} value.")
            members += [f"public {field.cs_type} {field.property_name} {{ get; set; }}", ""]
        members += ["#endregion"]

        body: List[str] = _summary(f"Data transfer object for the [{entity.table_name}] table.")
        body += [f"public class {entity.dto_class} : EntityBase", "{"]
        body += indent_lines(members, unit="\t")
        body += ["}"]

        lines: List[str] = ["using System;", "", f"namespace {self._config.target_namespace}", "{"]
        lines += indent_lines(body, unit="\t")
        lines += ["}"]
        return join_lines(lines)

    # -- Data-access class ----------------------------------------------------

    def _read_into(self, entity: EntityDescriptor, target: str, row: str = "drType") -> List[str]:
        return [f"{target}.{f.property_name} = {f.read_expression(row)};" for f in entity.fields]

    def _save_method(self, entity: EntityDescriptor) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.SAVE)
        obj: str = entity.instance
        body: List[str] = [
            "using (SqlConnection connection = CreateConnection())",
            f'using (SqlCommand scom = new SqlCommand("{name}", connection))',
            "{",
            "\tscom.CommandType = CommandType.StoredProcedure;",
        ]
        body += [f"\t{_bind(f, f'{obj}.{f.property_name}')}" for f in entity.user_fields]
        body += [
            '\tscom.Parameters.Add("@InsMode", SqlDbType.Int).Value = formMode;',
            '\tSqlParameter rtnValue = scom.Parameters.Add("@RtnValue", SqlDbType.Int);',
            "\trtnValue.Direction = ParameterDirection.Output;",
            "",
            "\tconnection.Open();",
            "\tscom.ExecuteNonQuery();",
            "\treturn Convert.ToInt32(rtnValue.Value) == 1;",
            "}",
        ]
        return _method(
            f"public bool Save{entity.variable}SP({entity.dto_class} {obj}, int formMode)",
            body,
            f"Saves a record to the {entity.table_name} table.",
        )

    def _key_arguments(self, entity: EntityDescriptor, fields: Sequence[FieldDescriptor], owner: str) -> str:
        return ", ".join(_sql_parameter(f, f"{owner}.{f.property_name}") for f in fields)

    def _select_all_method(self, entity: EntityDescriptor) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.SELECT_ALL)
        return _method(
            f"public DataTable SelectAll{entity.variable}()",
            [f'return ExecuteTable("{name}");'],
            f"Selects all records from the {entity.table_name} table.",
        )

    def _select_method(self, entity: EntityDescriptor) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.SELECT)
        obj: str = entity.instance
        keys: str = self._key_arguments(entity, entity.primary_keys, obj)
        body: List[str] = [
            f'DataTable dt{entity.variable} = ExecuteTable("{name}", {keys});',
            f"if (dt{entity.variable}.Rows.Count == 0)",
            "{",
            "\treturn null;",
            "}",
            f"DataRow drType = dt{entity.variable}.Rows[0];",
        ]
        body += self._read_into(entity, obj)
        body.append(f"return {obj};")
        return _method(
            f"public {entity.dto_class} Select{entity.variable}({entity.dto_class} {obj})",
            body,
            f"Selects a single record from the {entity.table_name} table by primary key.",
        )

    def _exists_method(self, entity: EntityDescriptor) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.SELECT)
        obj: str = entity.instance
        keys: str = self._key_arguments(entity, entity.primary_keys, obj)
        return _method(
            f"public bool Existing{entity.variable}({entity.dto_class} {obj})",
            [f'return ExecuteTable("{name}", {keys}).Rows.Count > 0;'],
            f"Checks whether a record with the same primary key exists in {entity.table_name}.",
        )

    def _list_body(self, entity: EntityDescriptor, call: str) -> List[str]:
        obj: str = entity.instance
        return (
            [
                f"List<{entity.dto_class}> retval = new List<{entity.dto_class}>();",
                f"foreach (DataRow drType in {call}.Rows)",
                "{",
                f"\t{entity.dto_class} {obj} = new {entity.dto_class}();",
            ]
            + [f"\t{line}" for line in self._read_into(entity, obj)]
            + [f"\tretval.Add({obj});", "}", "return retval;"]
        )

    def _multi_method(self, entity: EntityDescriptor) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.SELECT_ALL)
        return _method(
            f"public List<{entity.dto_class}> Select{entity.variable}Multi()",
            self._list_body(entity, f'ExecuteTable("{name}")'),
            f"Selects all records from the {entity.table_name} table as objects.",
        )

    def _select_all_by_method(self, entity: EntityDescriptor, group: ForeignKeyGroup) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.SELECT_ALL_BY, group)
        arguments: str = ", ".join(f"{f.cs_type} {f.parameter_name}" for f in group.fields)
        values: str = ", ".join(_sql_parameter(f, f.parameter_name) for f in group.fields)
        return _method(
            f"public List<{entity.dto_class}> SelectAll{entity.variable}By{group.name_suffix}({arguments})",
            self._list_body(entity, f'ExecuteTable("{name}", {values})'),
            f"Selects the {entity.table_name} records matching the {group.key} key.",
        )

    def render_dao(self, entity: EntityDescriptor) -> str:
        methods: List[str] = self._save_method(entity)
        if entity.emits_select:
            methods += self._select_all_method(entity)
            methods += self._select_method(entity)
            methods += self._exists_method(entity)
            methods += self._multi_method(entity)
        for group in entity.foreign_key_groups:
            methods += self._select_all_by_method(entity, group)

        helpers: List[str] = [
            "private SqlConnection CreateConnection()",
            "{",
            "\treturn new SqlConnection(ConfigurationManager.ConnectionStrings[connectionStringName].ConnectionString);",
            "}",
            "",
            "private DataTable ExecuteTable(string procedureName, params SqlParameter[] parameters)",
            "{",
            "\tDataTable table = new DataTable();",
            "\tusing (SqlConnection connection = CreateConnection())",
            "\tusing (SqlCommand scom = new SqlCommand(procedureName, connection))",
            "\t{",
            "\t\tscom.CommandType = CommandType.StoredProcedure;",
            "\t\tscom.Parameters.AddRange(parameters);",
            "\t\tusing (SqlDataAdapter adapter = new SqlDataAdapter(scom))",
            "\t\t{",
            "\t\t\tadapter.Fill(table);",
            "\t\t}",
            "\t}",
            "\treturn table;",
            "}",
        ]

        members: List[str] = [
            "#region Fields",
            "",
            "private readonly string connectionStringName;",
            "",
            "#endregion",
            "",
            "#region Constructors",
            "",
        ]
        members += _summary(f"Initializes a new instance of the {entity.dao_class} class.")
        members += [
            f"public {entity.dao_class}(string connectionStringName)",
            "{",
            "\tthis.connectionStringName = connectionStringName;",
            "}",
            "",
            "#endregion",
            "",
            "#region Methods",
            "",
        ]
        members += methods + helpers + ["", "#endregion"]

        body: List[str] = _summary(f"Data access methods for the [{entity.table_name}] table.")
        body += [f"public class {entity.dao_class}", "{"]
        body += indent_lines(members, unit="\t")
        body += ["}"]

        lines: List[str] = [
            "using System;",
            "using System.Collections.Generic;",
            "using System.Configuration;",
            "using System.Data;",
            "using System.Data.SqlClient;",
            "",
            f"namespace {self._config.target_namespace}",
            "{",
        ]
        lines += indent_lines(body, unit="\t")
        lines += ["}"]
        return join_lines(lines)

    # -- Dapper repository ----------------------------------------------------

    def _dapper_parameters(self, entity: EntityDescriptor, action: int) -> List[str]:
        """``DynamicParameters`` for the upsert procedure, generated keys as in/out."""
        lines: List[str] = ["var param = new DynamicParameters();"]
        for field in entity.fields:
            if field.is_user_supplied:
                lines.append(f'param.Add("{field.sql_variable}", value: entity.{field.property_name});')
            else:
                lines.append(
                    f'param.Add("{field.sql_variable}", value: entity.{field.property_name}, '
                    f"dbType: DbType.{field.clr_db_type}, direction: ParameterDirection.InputOutput);"
                )
        lines += [
            f'param.Add("@Action", value: {action});',
            'param.Add("@Status", dbType: DbType.Int32, direction: ParameterDirection.Output);',
        ]
        return lines

    def _execute_upsert(self, name: str) -> List[str]:
        return [
            f'Connection.Execute("{name}", param, commandType: CommandType.StoredProcedure);',
            'int status = param.Get<int>("@Status");',
            "if (status == -1)",
            "{",
            f'\tthrow new DataException("{name} reported an error.");',
            "}",
        ]

    def _dapper_save_method(self, entity: EntityDescriptor) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.UPSERT)
        scoped: List[str] = self._dapper_parameters(entity, 1) + self._execute_upsert(name)
        scoped += [
            f'entity.{f.property_name} = param.Get<{f.cs_type}>("{f.sql_variable}");'
            for f in entity.fields
            if not f.is_user_supplied
        ]
        scoped.append("scope.Complete();")
        body: List[str] = (
            ["using (var scope = new TransactionScope())", "{"]
            + indent_lines(scoped, unit="\t")
            + ["}", "return entity;"]
        )
        return _method(
            f"public override {entity.dto_class} Save2({entity.dto_class} entity)",
            body,
            f"Inserts or updates a {entity.table_name} record and reads back generated keys.",
        )

    def _dapper_remove_method(self, entity: EntityDescriptor) -> List[str]:
        name: str = self._procedures.procedure_name(entity, ProcedureShape.UPSERT)
        scoped: List[str] = self._dapper_parameters(entity, 2) + self._execute_upsert(name)
        scoped += ["scope.Complete();", "return status == 3;"]
        body: List[str] = ["using (var scope = new TransactionScope())", "{"] + indent_lines(scoped, unit="\t") + ["}"]
        return _method(
            f"public bool Remove2({entity.dto_class} entity)",
            body,
            f"Deletes a {entity.table_name} record by primary key.",
        )

    def render_dapper(self, entity: EntityDescriptor) -> str:
        """Dapper repository over the upsert procedure.  Needs a primary key."""
        if not entity.emits_upsert:
            raise ValueError(f"Table '{entity.table_name}' has no primary key; no upsert procedure to call.")

        members: List[str] = ["#region Constructors", ""]
        members += _summary(f"Initializes a new instance of the {entity.dao_class} class.")
        members += [
            f"public {entity.dao_class}(IDbConnection connection)",
            f'\t: base(connection, "{entity.table_name}")',
            "{",
            "}",
            "",
            "#endregion",
            "",
            "#region Methods",
            "",
        ]
        members += self._dapper_save_method(entity)
        members += self._dapper_remove_method(entity)
        members += ["#endregion"]

        body: List[str] = _summary(f"Dapper data access for the [{entity.table_name}] table.")
        body += [f"public class {entity.dao_class} : GenericRepository<{entity.dto_class}>", "{"]
        body += indent_lines(members, unit="\t")
        body += ["}"]

        lines: List[str] = [
            "using System;",
            "using System.Data;",
            "using System.Transactions;",
            "using Dapper;",
            "",
            f"namespace {self._config.target_namespace}.DapperRepositories",
            "{",
        ]
        lines += indent_lines(body, unit="\t")
        lines += ["}"]
        return join_lines(lines)


__all__: List[str] = ["DTO_DIRECTORY", "DAO_DIRECTORY", "DAPPER_DIRECTORY", "DataLayerEmitter"]
