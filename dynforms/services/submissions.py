from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from dynforms.core.context import AppContext
from dynforms.core.errors import DirectoryLookupFailed, EntryNotFound, ParseFailed, PersistenceFailed
from dynforms.models.form import Field, FieldType, Form
from dynforms.models.values import TextValue, TypedValue
from dynforms.services.authorization import Caller
from dynforms.services.query_builder import (
    SUMMARY_COLUMNS,
    build_entry_select,
    build_insert,
    build_list_select,
    build_update,
)
from dynforms.services.value_coercion import decode_field, encode, parse_integer

logger = logging.getLogger(__name__)

ID_KEY = "id"
TIMEZONE_OFFSET_KEY = "timezone-offset"
SUMMARY_COLUMN_TYPES = {
    "id": FieldType.INTEGER,
    "created_user": FieldType.VARCHAR,
    "created_ts": FieldType.TIMESTAMP,
}


def first_value(submitted: Mapping[str, Any], key: str) -> str:
    value = submitted.get(key)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return "" if value is None else str(value)


def parse_entry_id(raw: str) -> int:
    try:
        return parse_integer(str(raw).strip())
    except ValueError as exc:
        raise ParseFailed(ID_KEY, str(raw), "int") from exc


async def _directory_values(ctx: AppContext, username: str) -> dict[str, str]:
    if ctx.directory is None:
        raise DirectoryLookupFailed("directory fields requested but no directory is configured")
    try:
        return await run_in_threadpool(ctx.directory.lookup_identity, username)
    except DirectoryLookupFailed:
        raise
    except Exception as exc:
        raise DirectoryLookupFailed(f"unable to get directory fields for {username}") from exc


def _decode_fields(fields: Sequence[Field], submitted: Mapping[str, Any]) -> dict[str, TypedValue]:
    tz_offset = first_value(submitted, TIMEZONE_OFFSET_KEY)
    return {fld.name: decode_field(fld, first_value(submitted, fld.name), tz_offset=tz_offset) for fld in fields}


async def save_submission(ctx: AppContext, form: Form, caller: Caller, submitted: Mapping[str, Any]) -> int:
    """Insert or update one row from a submitted form and return its id.

    A submission carrying a non-empty ``id`` updates that row; directory
    values are looked up only for inserts.
    """
    raw_id = first_value(submitted, ID_KEY)
    is_insert = raw_id.strip() == ""
    entry_id: int | None = None

    if is_insert:
        values = _decode_fields(form.editable_fields, submitted)
        if form.use_directory_fields:
            directory = await _directory_values(ctx, caller.username)
            for fld in form.fields:
                if fld.is_directory_populated:
                    values[fld.name] = TextValue(directory.get(fld.name, ""))
        statement = build_insert(form, ctx.dialect, owner=caller.username, values=values)
    else:
        entry_id = parse_entry_id(raw_id)
        values = _decode_fields(form.editable_fields, submitted)
        statement = build_update(form, ctx.dialect, caller, entry_id=entry_id, values=values)

    try:
        row_id = await ctx.db.execute_returning(statement)
    except SQLAlchemyError as exc:
        action = "insert" if is_insert else "update"
        raise PersistenceFailed(f"unable to {action} into {form.table_name}") from exc

    if row_id is None:
        if is_insert:
            raise PersistenceFailed(f"insert into {form.table_name} returned no id")
        raise EntryNotFound(form.path, entry_id)

    logger.info(
        "form saved form=%s table=%s id=%s user=%s role=%s action=%s",
        form.path,
        form.table_name,
        row_id,
        caller.username,
        caller.role.value,
        "insert" if is_insert else "update",
    )
    return int(row_id)


def _row_values(row: Sequence[Any], fields: Sequence[Field]) -> dict[str, str]:
    expected = len(SUMMARY_COLUMNS) + len(fields)
    if len(row) != expected:
        raise PersistenceFailed(f"expected {expected} columns, got {len(row)}")
    out: dict[str, str] = {}
    for name, value in zip(SUMMARY_COLUMNS, row):
        out[name] = encode(SUMMARY_COLUMN_TYPES[name], value)
    for fld, value in zip(fields, row[len(SUMMARY_COLUMNS):]):
        out[fld.name] = encode(fld.field_type, value)
    return out


async def load_entry(ctx: AppContext, form: Form, caller: Caller, entry_id: int) -> dict[str, str]:
    statement = build_entry_select(form, ctx.dialect, caller, entry_id)
    try:
        row = await ctx.db.fetch_one(statement)
    except SQLAlchemyError as exc:
        raise PersistenceFailed(f"unable to load entry {entry_id} from {form.table_name}") from exc
    if row is None:
        raise EntryNotFound(form.path, entry_id)
    return _row_values(row, form.fields)


async def load_entries(ctx: AppContext, form: Form, caller: Caller) -> list[dict[str, str]]:
    statement = build_list_select(form, ctx.dialect, caller)
    try:
        rows = await ctx.db.fetch_all(statement)
    except SQLAlchemyError as exc:
        raise PersistenceFailed(f"unable to list entries from {form.table_name}") from exc
    fields = form.summary_fields
    return [_row_values(row, fields) for row in rows]
