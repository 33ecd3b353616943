from __future__ import annotations

import markdown
import nh3
from sqlalchemy.exc import SQLAlchemyError

from dynforms.core.context import AppContext
from dynforms.core.errors import MetadataQueryFailed
from dynforms.db.session import Statement
from dynforms.models.form import FieldMetadata
from dynforms.models.values import TextValue
from dynforms.services.identifiers import require_identifier

LABELS_TABLE_SUFFIX = "_labels"
LABELS_COLUMNS = (
    "label",
    "description",
    "placeholder",
    "options",
    "options_as_radio",
    "section_heading",
    "linebreak_after",
    "include_in_summary",
)
OPTIONS_SEPARATOR = ","


def labels_table_for(table_name: str) -> str:
    return require_identifier("labels table", f"{table_name}{LABELS_TABLE_SUFFIX}")


def default_label(column_name: str) -> str:
    label = column_name.replace("_", " ")
    return label[:1].upper() + label[1:]


def render_description(source: str) -> str:
    if not source:
        return ""
    return nh3.clean(markdown.markdown(source))


def split_options(raw: str) -> list[str]:
    # Raw comma split; an option cannot itself contain a comma.
    if not raw:
        return []
    return raw.split(OPTIONS_SEPARATOR)


def _text(value) -> str:
    return "" if value is None else str(value)


async def load_field_meta(ctx: AppContext, table_name: str, column_name: str) -> FieldMetadata:
    labels_table = labels_table_for(table_name)
    statement = Statement(
        f"SELECT {', '.join(LABELS_COLUMNS)} FROM {labels_table} WHERE column_name = {ctx.dialect.placeholder(1)}",
        (TextValue(column_name),),
    )
    try:
        row = await ctx.db.fetch_one(statement)
    except SQLAlchemyError as exc:
        raise MetadataQueryFailed(labels_table) from exc

    if row is None:
        return FieldMetadata(label=default_label(column_name))

    label, description, placeholder, options, options_as_radio, section_heading, linebreak_after, in_summary = row
    return FieldMetadata(
        label=_text(label) or default_label(column_name),
        description=render_description(_text(description)),
        placeholder=_text(placeholder),
        options=split_options(_text(options)),
        options_as_radio=bool(options_as_radio),
        section_heading=_text(section_heading),
        linebreak_after=bool(linebreak_after),
        include_in_summary=bool(in_summary),
    )
