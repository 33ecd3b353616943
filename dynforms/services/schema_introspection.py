from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from dynforms.core.context import AppContext
from dynforms.core.errors import SchemaQueryFailed
from dynforms.db.session import Statement
from dynforms.models.form import Column
from dynforms.models.values import IntegerValue, TextValue


async def load_columns(ctx: AppContext, table_name: str) -> list[Column]:
    """Columns of ``table_name`` in ordinal order, minus the reserved leading
    id/audit columns. An unknown table yields an empty list."""
    statement = Statement(
        ctx.dialect.columns_query,
        (TextValue(table_name), IntegerValue(ctx.settings.RESERVED_COLUMN_COUNT)),
    )
    try:
        rows = await ctx.db.fetch_all(statement)
    except SQLAlchemyError as exc:
        raise SchemaQueryFailed(f"unable to query table metadata for {table_name}") from exc

    columns: list[Column] = []
    for row in rows:
        try:
            name, native_type, not_null = row[0], row[1], row[2]
        except (IndexError, TypeError) as exc:
            raise SchemaQueryFailed(f"unable to read table column metadata for {table_name}") from exc
        columns.append(Column(name=str(name), native_type=str(native_type or ""), not_null=bool(not_null)))
    return columns
