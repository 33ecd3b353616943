"""Statement generation for one form table.

Only table and column names taken from the catalog are concatenated into
statement text, and only after validation against the form's catalog column
list. Every value travels as a positional parameter.

Parameter layout:

* insert: ``1`` owner, ``2..`` every field in form order
* update: ``1`` id, ``2`` owner, ``3..`` every non-directory field in form order
* list:   ``1`` owner (non-admin only)
* entry:  ``1`` id, ``2`` owner (non-admin only)
"""

from __future__ import annotations

from typing import Mapping

from dynforms.db.session import Statement
from dynforms.models.form import Field, Form
from dynforms.models.values import IntegerValue, TextValue, TypedValue
from dynforms.services.authorization import Caller
from dynforms.services.dialects import DialectProfile
from dynforms.services.identifiers import require_catalog_columns, require_identifier

AUDIT_INSERT_COLUMNS = ("created_ts", "updated_ts", "created_user")
SUMMARY_COLUMNS = ("id", "created_user", "created_ts")
NOW = "CURRENT_TIMESTAMP"


def _checked_names(form: Form, fields: list[Field]) -> tuple[str, list[str]]:
    table = require_identifier("table", form.table_name)
    names = require_catalog_columns([fld.name for fld in fields], form.column_names)
    return table, names


def insert_sql(form: Form, dialect: DialectProfile) -> str:
    table, names = _checked_names(form, form.fields)
    columns = ", ".join([*AUDIT_INSERT_COLUMNS, *names])
    values = ", ".join([NOW, NOW, dialect.placeholder(1), *(dialect.placeholder(i + 2) for i in range(len(names)))])
    if dialect.returning_inline:
        return f"INSERT INTO {table} ({columns}) {dialect.returning_clause} VALUES ({values})"
    return f"INSERT INTO {table} ({columns}) VALUES ({values}) {dialect.returning_clause}"


def update_sql(form: Form, dialect: DialectProfile, *, is_admin: bool) -> str:
    # Directory-populated fields are fixed at insert time and never updated.
    table, names = _checked_names(form, form.editable_fields)
    assignments = ", ".join(
        [f"updated_ts = {NOW}", *(f"{name} = {dialect.placeholder(i + 3)}" for i, name in enumerate(names))]
    )
    id_param = dialect.placeholder(1)
    owner_param = dialect.placeholder(2)
    if is_admin:
        # Always true, keeps the owner parameter bound for every role.
        owner_check = f"{owner_param} <> ''"
    else:
        owner_check = f"created_user = {owner_param}"
    where = f"WHERE id = {id_param} AND {owner_check}"
    if dialect.returning_inline:
        return f"UPDATE {table} SET {assignments} {dialect.returning_clause} {where}"
    return f"UPDATE {table} SET {assignments} {where} {dialect.returning_clause}"


def _select_columns(fields: list[Field], dialect: DialectProfile) -> str:
    return ", ".join([*SUMMARY_COLUMNS, *(dialect.select_column(fld.name, fld.field_type) for fld in fields)])


def list_sql(form: Form, dialect: DialectProfile, *, is_admin: bool) -> str:
    fields = form.summary_fields
    table, _ = _checked_names(form, fields)
    query = f"SELECT {_select_columns(fields, dialect)} FROM {table}"
    if not is_admin:
        query += f" WHERE created_user = {dialect.placeholder(1)}"
    return query + " ORDER BY created_ts DESC"


def entry_sql(form: Form, dialect: DialectProfile, *, is_admin: bool) -> str:
    table, _ = _checked_names(form, form.fields)
    query = f"SELECT {_select_columns(form.fields, dialect)} FROM {table} WHERE id = {dialect.placeholder(1)}"
    if not is_admin:
        query += f" AND created_user = {dialect.placeholder(2)}"
    return query


def _field_params(fields: list[Field], values: Mapping[str, TypedValue]) -> list[TypedValue]:
    missing = [fld.name for fld in fields if fld.name not in values]
    if missing:
        raise ValueError("no value supplied for fields: " + ", ".join(missing))
    return [values[fld.name] for fld in fields]


def build_insert(
    form: Form,
    dialect: DialectProfile,
    *,
    owner: str,
    values: Mapping[str, TypedValue],
) -> Statement:
    params = [TextValue(owner), *_field_params(form.fields, values)]
    return Statement(insert_sql(form, dialect), tuple(params))


def build_update(
    form: Form,
    dialect: DialectProfile,
    caller: Caller,
    *,
    entry_id: int,
    values: Mapping[str, TypedValue],
) -> Statement:
    params = [IntegerValue(entry_id), TextValue(caller.username), *_field_params(form.editable_fields, values)]
    return Statement(update_sql(form, dialect, is_admin=caller.is_admin), tuple(params))


def build_list_select(form: Form, dialect: DialectProfile, caller: Caller) -> Statement:
    params: tuple[TypedValue, ...] = () if caller.is_admin else (TextValue(caller.username),)
    return Statement(list_sql(form, dialect, is_admin=caller.is_admin), params)


def build_entry_select(form: Form, dialect: DialectProfile, caller: Caller, entry_id: int) -> Statement:
    params: list[TypedValue] = [IntegerValue(entry_id)]
    if not caller.is_admin:
        params.append(TextValue(caller.username))
    return Statement(entry_sql(form, dialect, is_admin=caller.is_admin), tuple(params))
