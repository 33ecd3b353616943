from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from dynforms.core.context import AppContext
from dynforms.core.errors import NotFound, SchemaQueryFailed
from dynforms.db.session import Statement
from dynforms.models.form import Column, Field, FieldMetadata, FieldType, Form, is_directory_field
from dynforms.models.values import TextValue
from dynforms.services.field_metadata import load_field_meta
from dynforms.services.field_types import map_type
from dynforms.services.identifiers import require_identifier
from dynforms.services.schema_introspection import load_columns

logger = logging.getLogger(__name__)

FORM_COLUMNS = ("name", "description", "table_name", "admins", "allow_anonymous", "use_directory_fields")


def parse_admins(raw: str | None) -> frozenset[str]:
    return frozenset(name.strip() for name in str(raw or "").split(",") if name.strip())


def build_field(column: Column, meta: FieldMetadata, field_type: FieldType, *, use_directory_fields: bool) -> Field:
    options: list[str] = []
    if meta.options:
        field_type = FieldType.RADIO if meta.options_as_radio else FieldType.SELECT
        options = list(meta.options)
    return Field(
        name=column.name,
        field_type=field_type,
        required=column.not_null,
        label=meta.label,
        description=meta.description,
        placeholder=meta.placeholder,
        options=options,
        section_heading=meta.section_heading,
        linebreak_after=meta.linebreak_after,
        include_in_summary=meta.include_in_summary,
        is_directory_populated=use_directory_fields and is_directory_field(column.name),
    )


async def load_form_record(ctx: AppContext, form_path: str) -> Form:
    """Registry row for ``form_path``, without fields."""
    forms_table = require_identifier("forms table", ctx.settings.FORMS_TABLE)
    statement = Statement(
        f"SELECT {', '.join(FORM_COLUMNS)} FROM {forms_table} WHERE path = {ctx.dialect.placeholder(1)}",
        (TextValue(form_path),),
    )
    try:
        row = await ctx.db.fetch_one(statement)
    except SQLAlchemyError as exc:
        raise SchemaQueryFailed("form registry query error") from exc
    if row is None:
        raise NotFound(form_path)

    name, description, table_name, admins, allow_anonymous, use_directory_fields = row
    use_directory_fields = bool(use_directory_fields)
    if use_directory_fields and ctx.directory is None:
        logger.info("directory not configured, ignoring use_directory_fields form=%s", form_path)
        use_directory_fields = False

    return Form(
        path=form_path,
        name=str(name or ""),
        description=str(description or ""),
        table_name=require_identifier("table", str(table_name or "")),
        admins=parse_admins(admins),
        allow_anonymous=bool(allow_anonymous),
        use_directory_fields=use_directory_fields,
    )


async def load_form_fields(ctx: AppContext, form: Form) -> Form:
    columns = await load_columns(ctx, form.table_name)
    fields: list[Field] = []
    for column in columns:
        meta = await load_field_meta(ctx, form.table_name, column.name)
        field_type = map_type(column.native_type, ctx.dialect)
        fields.append(build_field(column, meta, field_type, use_directory_fields=form.use_directory_fields))
    form.fields = fields
    form.column_names = frozenset(column.name for column in columns)
    return form


async def load_form(ctx: AppContext, form_path: str) -> Form:
    form = await load_form_record(ctx, form_path)
    return await load_form_fields(ctx, form)
