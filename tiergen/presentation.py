# File: tiergen/presentation.py
"""
tiergen - Presentation Emitters
===============================
Renders the thin presentation tier for one table:

* ``WebAPI/<Class><DaoSuffix>.cs`` - an ASP.NET Web API controller exposing
  the generic repository over HTTP.
* ``FrontEndAngular/<Class><DaoSuffix>.ts`` - an Angular component with a
  reactive form and a data-table list, followed by the client-side model.
* ``FrontEndAngularHTML/<Class><DaoSuffix>.html`` - the component markup.
* ``FormClasses/<Class><DaoSuffix>.cs`` - Windows Forms code-behind that loads,
  saves and deletes a record through the data-access class.

Every field is spelled with ``FieldDescriptor.property_name``: the
controller payload, the TypeScript model, the form control names and the
markup bindings all agree with the DTO properties.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from tiergen.descriptors import EntityDescriptor, FieldDescriptor
from tiergen.models import GenerationConfig
from tiergen.utils import indent_lines, join_lines, kebab_name, label_text

logger: logging.Logger = logging.getLogger("tiergen.presentation")

WEB_API_DIRECTORY: str = "WebAPI"
COMPONENT_DIRECTORY: str = "FrontEndAngular"
MARKUP_DIRECTORY: str = "FrontEndAngularHTML"
FORM_DIRECTORY: str = "FormClasses"

# Audit columns the component fills in itself instead of reading the form
_AUDIT_ASSIGNMENTS: Dict[str, str] = {
    "CreatedDate": "new Date()",
    "ModifiedDate": "new Date()",
    "CreatedUser": "this.gloconfig.GetlogedInUserID",
    "ModifiedUser": "this.gloconfig.GetlogedInUserID",
    "DataTransfer": "1",
}

_INPUT_TYPES: Dict[str, str] = {
    "number": "number",
    "Date": "date",
    "boolean": "checkbox",
}


def _key(entity: EntityDescriptor) -> Tuple[str, str, str]:
    """(property name, C# type, TypeScript type) of the routing key."""
    field: Optional[FieldDescriptor] = entity.key_field
    if field is None:
        return "Id", "int", "number"
    return field.property_name, field.cs_type, field.ts_type


def _error_response(message: str) -> str:
    return (
        "return Request.CreateErrorResponse(HttpStatusCode.InternalServerError, "
        f'new Exception("{message}", ex));'
    )


def _action(attributes: List[str], signature: str, body: List[str], failure: List[str]) -> List[str]:
    """One controller action wrapped in ``try`` / ``catch (Exception ex)``."""
    return (
        attributes
        + [signature, "{", "\ttry", "\t{"]
        + indent_lines(body, 2, "\t")
        + ["\t}", "\tcatch (Exception ex)", "\t{"]
        + indent_lines(failure, 2, "\t")
        + ["\t}", "}", ""]
    )


def _form_control(field: FieldDescriptor) -> str:
    """``Name: [null, [Validators.required, Validators.maxLength(50)]]``."""
    validators: List[str] = []
    if field.is_user_supplied and not field.nullable:
        validators.append("Validators.required")
    if field.is_character and field.length > 0:
        validators.append(f"Validators.maxLength({field.length})")
    if not validators:
        return f"{field.property_name}: [null],"
    if len(validators) == 1:
        return f"{field.property_name}: [null, {validators[0]}],"
    return f"{field.property_name}: [null, [{', '.join(validators)}]],"


def _mark_touched() -> List[str]:
    return [
        "Object.keys(this.myform.controls).forEach(field => {",
        "\tconst control = this.myform.get(field);",
        "\tcontrol.markAsTouched({ onlySelf: true });",
        "});",
    ]


def _subscribe(call: str, success: List[str], failure: str) -> List[str]:
    return [
        call,
        "\t.subscribe(",
        "\t\tdata => {",
    ] + indent_lines(success, 3, "\t") + [
        "\t\t},",
        "\t\terr => {",
        f'\t\t\tthis.showError("{failure}");',
        "\t\t\tconsole.log(err);",
        "\t\t},",
        "\t\t() => {",
        "\t\t\tthis.Filter();",
        "\t\t\tthis.switchData();",
        "\t\t});",
    ]


class PresentationEmitter:
    """Renders the controller, component, markup and form code-behind for one entity."""

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config

    # -- Paths --------------------------------------------------------------

    def _base_name(self, entity: EntityDescriptor) -> str:
        return f"{entity.class_name}{self._config.dao_suffix}"

    def controller_path(self, entity: EntityDescriptor) -> str:
        return f"{WEB_API_DIRECTORY}/{self._base_name(entity)}.cs"

    def component_path(self, entity: EntityDescriptor) -> str:
        return f"{COMPONENT_DIRECTORY}/{self._base_name(entity)}.ts"

    def markup_path(self, entity: EntityDescriptor) -> str:
        return f"{MARKUP_DIRECTORY}/{self._base_name(entity)}.html"

    def template_url(self, entity: EntityDescriptor) -> str:
        """Markup file as seen from the component's directory."""
        return f"../{self.markup_path(entity)}"

    def form_path(self, entity: EntityDescriptor) -> str:
        return f"{FORM_DIRECTORY}/{self._base_name(entity)}.cs"

    # -- Web API controller ---------------------------------------------------

    def render_controller(self, entity: EntityDescriptor) -> str:
        dto: str = entity.dto_class
        controller: str = f"{entity.class_name}Controller"
        key_property, key_type, _ = _key(entity)
        label: str = label_text(entity.class_name)

        actions: List[str] = _action(
            ['[Route("GetAll")]', "[HttpGet]"],
            "public async Task<HttpResponseMessage> GetAll()",
            [
                f"var response = Request.CreateResponse<IEnumerable<{dto}>>(HttpStatusCode.OK, await Repo.AllAsync());",
                'response.Headers.Add("Message", "Records loaded");',
                'response.Headers.Add("Error", "null");',
                "return response;",
            ],
            [_error_response("Error from GetAll")],
        )
        actions += _action(
            ['[Route("Get")]', "[HttpGet]"],
            f"public async Task<HttpResponseMessage> Get({key_type} id)",
            [
                "var entity = await Repo.FindAsync(id);",
                "if (entity == null)",
                "{",
                f'\treturn Request.CreateErrorResponse(HttpStatusCode.NotFound, "{label} not found");',
                "}",
                f"var response = Request.CreateResponse<{dto}>(HttpStatusCode.OK, entity);",
                'response.Headers.Add("Message", "Record loaded");',
                "return response;",
            ],
            [_error_response("Error from Get")],
        )
        actions += _action(
            ["[HttpPost, HttpGet]", '[Route("SaveAsync")]'],
            f"public async Task<HttpResponseMessage> SaveAsync([FromBody]{dto} Entity)",
            [
                "int newid = await Repo.AddAsync(Entity);",
                "var result = Request.CreateResponse<int>(HttpStatusCode.OK, newid);",
                'result.Headers.Add("Message", "Record saved successfully");',
                "return result;",
            ],
            [_error_response("Error from SaveAsync")],
        )
        actions += _action(
            ["[HttpPost, HttpGet]", '[Route("UpdateAsync")]'],
            f"public async Task<HttpResponseMessage> UpdateAsync([FromBody]{dto} Entity)",
            [
                f"bool updated = await Repo.UpdateAsync(Entity, Entity.{key_property});",
                "var result = Request.CreateResponse<bool>(HttpStatusCode.OK, updated);",
                'result.Headers.Add("Message", "Record updated successfully");',
                "return result;",
            ],
            [_error_response("Error from UpdateAsync")],
        )
        actions += _action(
            ["[HttpPost, HttpGet]", '[Route("DeleteAsync")]'],
            f"public async Task<HttpResponseMessage> DeleteAsync({key_type} id)",
            [
                "bool removed = await Repo.RemoveAsync(id);",
                "if (!removed)",
                "{",
                '\treturn Request.CreateErrorResponse(HttpStatusCode.InternalServerError, new Exception("Record not found for id: " + id.ToString()));',
                "}",
                "var result = Request.CreateResponse<bool>(HttpStatusCode.OK, removed);",
                'result.Headers.Add("Message", "Record deleted successfully");',
                "return result;",
            ],
            [_error_response("Error from DeleteAsync")],
        )
        actions += _action(
            ["[HttpPost, HttpGet]", '[Route("SaveMultiAsync")]'],
            f"public async Task<IHttpActionResult> SaveMultiAsync([FromBody]List<{dto}> Entity)",
            ["int newid = await Repo.AddAsync(Entity);", "return Ok(newid);"],
            ['return InternalServerError(new Exception("Error from SaveMultiAsync", ex));'],
        )

        members: List[str] = [
            f"GenericRepository<{dto}> Repo;",
            "",
            f"public {controller}()",
            "{",
            f'\tRepo = new GenericRepository<{dto}>(ConnectionFactory.GetOpenConnection(), "{entity.table_name}");',
            "}",
            "",
        ] + actions

        body: List[str] = [
            '[EnableCors(origins: "*", headers: "*", methods: "*", exposedHeaders: "Message,Error")]',
            f'[RoutePrefix("{dto}")]',
            f"public class {controller} : ApiController",
            "{",
        ] + indent_lines(members, unit="\t") + ["}"]

        lines: List[str] = [
            "using System;",
            "using System.Collections.Generic;",
            "using System.Net;",
            "using System.Net.Http;",
            "using System.Threading.Tasks;",
            "using System.Web.Http;",
            "using System.Web.Http.Cors;",
            "",
            f"namespace {self._config.target_namespace}.Controllers",
            "{",
        ]
        lines += indent_lines(body, unit="\t")
        lines += ["}"]
        return join_lines(lines)

    # -- Angular component ----------------------------------------------------

    def _on_submit(self, entity: EntityDescriptor) -> List[str]:
        body: List[str] = []
        for field in entity.fields:
            name: str = field.property_name
            if field.is_user_supplied and name in _AUDIT_ASSIGNMENTS:
                body.append(f"this.obj.{name} = {_AUDIT_ASSIGNMENTS[name]};")
            else:
                body.append(f"this.obj.{name} = myform.value.{name};")

        insert_case: List[str] = ["case 'Insert':"]
        if entity.identity_field is not None:
            insert_case.append(f"\tthis.obj.{entity.identity_field.property_name} = -1;")
        insert_case.append("\tbreak;")
        body += ["switch (btn) {"] + indent_lines(insert_case, unit="\t") + ["\tdefault:", "\t\tbreak;", "}"]
        return ["onSubmit(myform, event, btn) {"] + indent_lines(body, unit="\t") + ["}", ""]

    def render_component(self, entity: EntityDescriptor) -> str:
        model: str = entity.dto_class
        route: str = entity.dto_class
        selector: str = kebab_name(entity.class_name)
        key_property, _, key_ts = _key(entity)

        members: List[str] = [
            "// Data table state",
            "@ViewChild(DataTableDirective)",
            "dtElement: DataTableDirective;",
            "dtOptions: DataTables.Settings = {};",
            "dtTrigger: Subject<any> = new Subject();",
            "",
            "// Confirmation popovers",
            "popoverTitle: string = this.gloconfig.GetmessageCaption;",
            "popoverMessageSave: string = this.gloconfig.GetconfirmInsert;",
            "popoverMessageUpdate: string = this.gloconfig.GetconfirmModify;",
            "popoverMessageDelete: string = this.gloconfig.GetconfirmDelete;",
            "confirmText: string = 'Yes <i class=\"glyphicon glyphicon-ok\"></i>';",
            "cancelText: string = 'No <i class=\"glyphicon glyphicon-remove\"></i>';",
            "",
            "private customHeaders: HttpHeaders = this.setCredentialsHeader();",
            "myform: FormGroup;",
            "selectedRow: any;",
            f"selectedItem: {model} = new {model}();",
            f"holdvar: {model}[] = [];",
            f"filterholder: {model}[];",
            f"obj: {model} = new {model}();",
            "",
            "issuccess = false;",
            "iserror = false;",
            'successmsg = "";',
            'errormsg = "";',
            "",
            "constructor(private _http: HttpClient, private gloconfig: GlobalConfig,",
            "\tprivate formBuilder: FormBuilder) {}",
            "",
            "showSuccess(message: string) {",
            "\tthis.issuccess = true;",
            "\tthis.iserror = false;",
            "\tthis.successmsg = message;",
            "\tsetTimeout(() => {",
            "\t\tthis.issuccess = false;",
            "\t\tthis.iserror = false;",
            "\t}, 5000);",
            f"\tthis.selectedItem = new {model}();",
            "}",
            "",
            "showError(message: string) {",
            "\tthis.errormsg = message;",
            "\tthis.issuccess = false;",
            "\tthis.iserror = true;",
            "\tsetTimeout(() => {",
            "\t\tthis.issuccess = false;",
            "\t\tthis.iserror = false;",
            "\t}, 5000);",
            "}",
            "",
            "isFieldValid(field: string) {",
            "\treturn !this.myform.get(field).valid && this.myform.get(field).touched;",
            "}",
            "",
            "displayFieldCss(field: string) {",
            "\treturn {",
            "\t\t'has-error': this.isFieldValid(field),",
            "\t\t'has-feedback': this.isFieldValid(field)",
            "\t};",
            "}",
            "",
            "ngOnInit() {",
            "\tthis.dtOptions = {",
            "\t\tpagingType: 'full_numbers',",
            "\t\tpageLength: 10,",
            "\t};",
            "\tthis.myform = this.formBuilder.group({",
        ]
        members += [f"\t\t{_form_control(f)}" for f in entity.fields]
        members += [
            "\t});",
            "\tthis.Filter();",
            "}",
            "",
            "ngAfterViewInit(): void {",
            "\tthis.dtTrigger.next();",
            "}",
            "",
            "setCredentialsHeader() {",
            "\tlet headers = new HttpHeaders();",
            "\tlet token = window.localStorage.getItem('token');",
            "\tif (token) {",
            "\t\theaders = headers.append('Authorization', 'Bearer ' + token);",
            "\t}",
            "\treturn headers;",
            "}",
            "",
            "Filter() {",
        ]
        members += indent_lines(
            [
                f'this._http.get<{model}[]>(this.gloconfig.GetConnection("{route}", "GetAll"), {{ headers: this.customHeaders }})',
                "\t.subscribe(",
                "\t\tdata => {",
                "\t\t\tthis.filterholder = data;",
                "\t\t},",
                "\t\terr => {",
                "\t\t\tconsole.log(err);",
                "\t\t},",
                "\t\t() => {",
                "\t\t\tthis.holdvar = this.filterholder;",
                "\t\t\tthis.switchData();",
                "\t\t});",
            ],
            unit="\t",
        )
        members += [
            "}",
            "",
            "switchData(): void {",
            "\t// dtInstance is undefined until the table has rendered once",
            "\tif (this.dtElement.dtInstance !== undefined) {",
            "\t\tthis.dtElement.dtInstance.then((dtInstance: DataTables.Api) => {",
            "\t\t\tdtInstance.destroy();",
            "\t\t\tthis.holdvar = this.filterholder;",
            "\t\t\tthis.dtTrigger.next();",
            "\t\t});",
            "\t}",
            "}",
            "",
            "setClickedRow(item: any, i: any) {",
            "\tthis.selectedRow = i;",
            "\tthis.selectedItem = item;",
            "}",
            "",
        ]
        members += self._on_submit(entity)

        members += ["SaveConfirm() {", "\tif (this.myform.valid) {", "\t\tthis.Save(this.obj);", "\t} else {"]
        members += indent_lines(_mark_touched(), 2, "\t")
        members += ["\t}", "}", "", "SaveCancel() {", '\tconsole.log("Insert cancelled");', "}", ""]
        members += [f"Save(item: {model}) {{"]
        members += indent_lines(
            _subscribe(
                f'this._http.post(this.gloconfig.GetConnection("{route}", "SaveAsync"), item, {{ headers: this.customHeaders }})',
                ['this.showSuccess("Record inserted successfully!");'],
                "An error occurred. Record not inserted!",
            ),
            unit="\t",
        )
        members += ["}", ""]

        members += ["UpdateConfirm() {", "\tif (this.myform.valid) {", "\t\tthis.Update(this.obj);", "\t} else {"]
        members += indent_lines(_mark_touched(), 2, "\t")
        members += ["\t}", "}", "", "UpdateCancel() {", '\tconsole.log("Update cancelled");', "}", ""]
        members += [f"Update(item: {model}) {{"]
        members += indent_lines(
            _subscribe(
                f'this._http.post(this.gloconfig.GetConnection("{route}", "UpdateAsync"), item, {{ headers: this.customHeaders }})',
                ["if (data === true) {", '\tthis.showSuccess("Record updated successfully!");', "}"],
                "An error occurred. Record not updated!",
            ),
            unit="\t",
        )
        members += ["}", ""]

        members += [
            f"deleteConfirm(item: {model}) {{",
            f"\tthis.Delete(item.{key_property});",
            "}",
            "",
            "deleteCancel() {",
            '\tconsole.log("Delete cancelled");',
            "}",
            "",
            f"Delete(id: {key_ts}) {{",
        ]
        members += indent_lines(
            _subscribe(
                f'this._http.post(this.gloconfig.GetConnection("{route}", "DeleteAsync") + `?id=${{id}}`, id, {{ headers: this.customHeaders }})',
                ["if (data === true) {", '\tthis.showSuccess("Record deleted successfully!");', "}"],
                "An error occurred. Record not deleted!",
            ),
            unit="\t",
        )
        members += ["}"]

        lines: List[str] = [
            "import { Component, OnInit, ViewChild, AfterViewInit } from '@angular/core';",
            "import { HttpClient, HttpHeaders } from '@angular/common/http';",
            "import { FormGroup, Validators, FormBuilder } from '@angular/forms';",
            "import { Subject } from 'rxjs';",
            "import { DataTableDirective } from 'angular-datatables';",
            "import { GlobalConfig } from '../../service/globalconfig.service';",
            "",
            "@Component({",
            f"\tselector: 'app-{selector}',",
            f"\ttemplateUrl: '{self.template_url(entity)}'",
            "})",
            f"export class {entity.class_name}Component implements OnInit, AfterViewInit {{",
        ]
        lines += indent_lines(members, unit="\t")
        lines += ["}", "", f"export class {model} {{"]
        lines += [f"\t{f.property_name}: {f.ts_type};" for f in entity.fields]
        lines += ["}"]
        return join_lines(lines)

    # -- Angular markup -------------------------------------------------------

    def _form_input(self, field: FieldDescriptor) -> List[str]:
        name: str = field.property_name
        label: str = label_text(name)
        input_type: str = _INPUT_TYPES.get(field.ts_type, "text")
        required: str = "" if field.nullable else " required"
        message: str = f"{label} is required!" if not field.nullable else f"{label} is invalid!"
        if field.is_character and field.length > 0:
            message += f" {field.length} characters maximum."
        return [
            f'<label for="ID_{name}">{label}</label>',
            f"<div class=\"form-group\" [ngClass]=\"displayFieldCss('{name}')\">",
            '\t<div class="form-line">',
            f'\t\t<input type="{input_type}"{required} id="ID_{name}" formControlName="{name}" '
            f'[ngModel]="selectedItem.{name}" class="form-control" placeholder="{label}">',
            "\t</div>",
            f"\t<app-field-error-display [displayError]=\"isFieldValid('{name}')\" errorMsg=\"{message}\">",
            "\t</app-field-error-display>",
            "</div>",
        ]

    def render_markup(self, entity: EntityDescriptor) -> str:
        title: str = label_text(entity.class_name)

        alerts: List[str] = [
            '<div class="row clearfix">',
            '\t<div class="col-xs-12 col-sm-12 col-md-8 col-lg-8">',
            '\t\t<div *ngIf="issuccess" class="alert alert-success">',
            "\t\t\t<strong>Well done!</strong> {{successmsg}}",
            "\t\t</div>",
            '\t\t<div *ngIf="iserror" class="alert alert-danger">',
            "\t\t\t<strong>Oops!</strong> {{errormsg}}",
            "\t\t</div>",
            "\t</div>",
            "</div>",
        ]

        table: List[str] = [
            '<table datatable [dtOptions]="dtOptions" [dtTrigger]="dtTrigger" class="table table-hover">',
            "\t<thead>",
            "\t\t<tr>",
        ]
        table += [f"\t\t\t<th>{label_text(f.property_name)}</th>" for f in entity.fields]
        table += [
            "\t\t\t<th></th>",
            "\t\t</tr>",
            "\t</thead>",
            '\t<tbody *ngIf="holdvar">',
            '\t\t<tr *ngFor="let item of holdvar; let i = index" (click)="setClickedRow(item, i)" [class.active]="i == selectedRow">',
        ]
        table += [f"\t\t\t<td>{{{{item.{f.property_name}}}}}</td>" for f in entity.fields]
        table += [
            "\t\t\t<td>",
            '\t\t\t\t<a class="btn btn-xs btn-danger waves-effect" mwlConfirmationPopover [popoverTitle]="popoverTitle" [popoverMessage]="popoverMessageDelete"',
            '\t\t\t\t\t[confirmText]="confirmText" [cancelText]="cancelText" placement="top" (confirm)="deleteConfirm(item)"',
            '\t\t\t\t\t(cancel)="deleteCancel()" confirmButtonType="danger" cancelButtonType="default" [appendToBody]="true">X</a>',
            "\t\t\t</td>",
            "\t\t</tr>",
            "\t</tbody>",
            "</table>",
        ]

        form: List[str] = [
            "<form id=\"form_advanced_validation\" [formGroup]=\"myform\" (ngSubmit)=\"onSubmit(myform, $event, 'Insert')\">",
        ]
        for field in entity.fields:
            if not field.is_user_supplied:
                form.append(
                    f'\t<input type="text" formControlName="{field.property_name}" '
                    f'[ngModel]="selectedItem.{field.property_name}" style="display:none">'
                )
        for field in entity.user_fields:
            form += indent_lines(self._form_input(field), unit="\t")
        form += [
            '\t<button type="button" class="btn btn-primary" mwlConfirmationPopover [popoverTitle]="popoverTitle" [popoverMessage]="popoverMessageSave"',
            '\t\t[confirmText]="confirmText" [cancelText]="cancelText" placement="bottom" (confirm)="SaveConfirm()" (cancel)="SaveCancel()"',
            "\t\tconfirmButtonType=\"info\" cancelButtonType=\"default\" (click)=\"onSubmit(myform, $event, 'Insert')\" [appendToBody]=\"true\">Insert</button>",
            '\t<button type="button" class="btn btn-primary" mwlConfirmationPopover [popoverTitle]="popoverTitle" [popoverMessage]="popoverMessageUpdate"',
            '\t\t[confirmText]="confirmText" [cancelText]="cancelText" placement="bottom" (confirm)="UpdateConfirm()" (cancel)="UpdateCancel()"',
            "\t\tconfirmButtonType=\"warning\" cancelButtonType=\"default\" (click)=\"onSubmit(myform, $event, 'Update')\" [appendToBody]=\"true\">Update</button>",
            "</form>",
        ]

        def card(width: str, content: List[str]) -> List[str]:
            return (
                [f'<div class="col-xs-12 col-sm-12 {width}">', '\t<div class="card">', '\t\t<div class="body">']
                + indent_lines(content, 3, "\t")
                + ["\t\t</div>", "\t</div>", "</div>"]
            )

        body: List[str] = alerts + ['<div class="row clearfix">']
        body += indent_lines(card("col-md-8 col-lg-8", ['<div class="table-responsive">'] + indent_lines(table, unit="\t") + ["</div>"]), unit="\t")
        body += indent_lines(card("col-md-4 col-lg-4", form), unit="\t")
        body += ["</div>"]

        lines: List[str] = [
            '<div class="row clearfix">',
            '\t<div class="card">',
            '\t\t<div class="header bg-teal">',
            f"\t\t\t<h2>{title.upper()}</h2>",
            "\t\t</div>",
            '\t\t<div class="body">',
        ]
        lines += indent_lines(body, 3, "\t")
        lines += ["\t\t</div>", "\t</div>", "</div>"]
        return join_lines(lines)

    # -- Windows Forms code-behind --------------------------------------------

    def _form_region(self, name: str, signature: str, body: List[str]) -> List[str]:
        return [f"#region {name}", "", signature, "{"] + indent_lines(body, unit="\t") + ["}", "", "#endregion", ""]

    def render_form(self, entity: EntityDescriptor) -> str:
        """
        Code-behind for a data-entry form with one ``txt_<Property>`` text box
        per user-supplied column.

        ``formMode`` follows the Save procedure: 1 inserts, 3 updates, 2
        deletes.  Loading a record switches the form to update mode.
        """
        dto: str = entity.dto_class
        obj: str = entity.instance
        form: str = f"{entity.class_name}Form"
        save: str = f"dataAccess.Save{entity.variable}SP"
        boxes: List[FieldDescriptor] = list(entity.user_fields)

        members: List[str] = [
            f"private readonly {entity.dao_class} dataAccess;",
            f"private {dto} current;",
            "private int formMode = 1;",
            "",
            f"public {form}(string connectionStringName)",
            "{",
            "\tInitializeComponent();",
            f"\tdataAccess = new {entity.dao_class}(connectionStringName);",
            "}",
            "",
        ]

        if entity.emits_select:
            arguments: str = ", ".join(f"{f.cs_type} {f.parameter_name}" for f in entity.primary_keys)
            loaded: List[str] = [f"txt_{f.property_name}.Text = {obj}.{f.property_name}.ToString();" for f in boxes]
            loaded += [f"current = {obj};", "formMode = 3;"]
            body: List[str] = [f"{dto} {obj} = new {dto}();"]
            body += [f"{obj}.{f.property_name} = {f.parameter_name};" for f in entity.primary_keys]
            body += [f"{obj} = dataAccess.Select{entity.variable}({obj});", f"if ({obj} != null)", "{"]
            body += indent_lines(loaded, unit="\t") + ["}"]
            members += self._form_region("SetValues", f"private void SetValues({arguments})", body)

        body = [f"{dto} {obj} = current ?? new {dto}();"]
        body += [
            f"{obj}.{f.property_name} = {f.convert_prefix}txt_{f.property_name}.Text.Trim(){f.convert_suffix};"
            for f in boxes
        ]
        body += [
            f"bool saved = {save}({obj}, formMode);",
            "if (saved)",
            "{",
            "\tClearValues();",
            "}",
            "return saved;",
        ]
        members += self._form_region("SaveValues", "private bool SaveValues()", body)

        if entity.emits_delete:
            body = [
                "if (current == null)",
                "{",
                "\treturn false;",
                "}",
                f"bool deleted = {save}(current, 2);",
                "if (deleted)",
                "{",
                "\tClearValues();",
                "}",
                "return deleted;",
            ]
            members += self._form_region("DeleteValues", "private bool DeleteValues()", body)

        body = [f"txt_{f.property_name}.Text = string.Empty;" for f in boxes]
        body += ["current = null;", "formMode = 1;"]
        members += self._form_region("ClearValues", "private void ClearValues()", body)

        lines: List[str] = [
            "using System;",
            "using System.Windows.Forms;",
            "",
            f"namespace {self._config.target_namespace}.Forms",
            "{",
            f"\tpublic partial class {form} : Form",
            "\t{",
        ]
        lines += indent_lines(members[:-1], 2, "\t")
        lines += ["\t}", "}"]
        return join_lines(lines)


__all__: List[str] = [
    "WEB_API_DIRECTORY",
    "COMPONENT_DIRECTORY",
    "MARKUP_DIRECTORY",
    "FORM_DIRECTORY",
    "PresentationEmitter",
]
