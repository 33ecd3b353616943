"""SQL dialect profiles.

A profile is the only place where the supported backends differ: positional
placeholder syntax, the "return generated id" idiom, the catalog query used
for introspection and the native type-name table. Adding a backend means
adding a profile here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from dynforms.models.form import FieldType

POSTGRES = "postgres"
SQLSERVER = "sqlserver"


@dataclass(frozen=True)
class DialectProfile:
    name: str
    placeholder_format: str
    placeholder_pattern: re.Pattern[str]
    returning_clause: str
    # True: clause sits before VALUES / WHERE (OUTPUT INSERTED.id)
    # False: clause trails the statement (RETURNING id)
    returning_inline: bool
    type_map: Mapping[str, FieldType]
    columns_query: str
    money_select_format: str = "{name}"

    def placeholder(self, position: int) -> str:
        if position < 1:
            raise ValueError("placeholder positions start at 1")
        return self.placeholder_format.format(n=position)

    def bind_name(self, position: int) -> str:
        return f"p{position}"

    def to_named_binds(self, sql: str) -> str:
        return self.placeholder_pattern.sub(lambda m: ":" + self.bind_name(int(m.group(1))), sql)

    def placeholder_positions(self, sql: str) -> list[int]:
        return [int(m.group(1)) for m in self.placeholder_pattern.finditer(sql)]

    def select_column(self, name: str, field_type: FieldType) -> str:
        if field_type == FieldType.MONEY:
            return self.money_select_format.format(name=name)
        return name


_POSTGRES_COLUMNS_QUERY = """
SELECT f.attname,
       pg_catalog.format_type(f.atttypid, f.atttypmod),
       f.attnotnull
FROM pg_catalog.pg_attribute f
     JOIN pg_catalog.pg_class c ON c.oid = f.attrelid
     LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
WHERE c.relkind = 'r'
  AND n.nspname = 'public'
  AND c.relname = $1
  AND f.attnum > $2
  AND NOT f.attisdropped
ORDER BY f.attnum
"""

_SQLSERVER_COLUMNS_QUERY = """
SELECT COLUMN_NAME,
       DATA_TYPE,
       IIF(IS_NULLABLE = 'NO', 1, 0)
FROM information_schema.columns
WHERE table_name = @p1
  AND ORDINAL_POSITION > @p2
ORDER BY ORDINAL_POSITION
"""

POSTGRES_PROFILE = DialectProfile(
    name=POSTGRES,
    placeholder_format="${n}",
    placeholder_pattern=re.compile(r"\$(\d+)"),
    returning_clause="RETURNING id",
    returning_inline=False,
    type_map=MappingProxyType(
        {
            "character varying": FieldType.VARCHAR,
            "text": FieldType.TEXT,
            "integer": FieldType.INTEGER,
            "numeric": FieldType.DECIMAL,
            "money": FieldType.MONEY,
            "double precision": FieldType.FLOAT,
            "boolean": FieldType.BOOLEAN,
            "timestamp with time zone": FieldType.TIMESTAMP,
            "date": FieldType.DATE,
        }
    ),
    columns_query=_POSTGRES_COLUMNS_QUERY,
    money_select_format="{name}::numeric",
)

SQLSERVER_PROFILE = DialectProfile(
    name=SQLSERVER,
    placeholder_format="@p{n}",
    placeholder_pattern=re.compile(r"@p(\d+)"),
    returning_clause="OUTPUT INSERTED.id",
    returning_inline=True,
    type_map=MappingProxyType(
        {
            "varchar": FieldType.VARCHAR,
            "text": FieldType.TEXT,
            "int": FieldType.INTEGER,
            "decimal": FieldType.DECIMAL,
            "money": FieldType.MONEY,
            "float": FieldType.FLOAT,
            "bit": FieldType.BOOLEAN,
            "datetimeoffset": FieldType.TIMESTAMP,
            "date": FieldType.DATE,
        }
    ),
    columns_query=_SQLSERVER_COLUMNS_QUERY,
)

PROFILES: Mapping[str, DialectProfile] = MappingProxyType(
    {
        POSTGRES: POSTGRES_PROFILE,
        SQLSERVER: SQLSERVER_PROFILE,
    }
)


def get_dialect(name: str) -> DialectProfile:
    key = str(name or "").strip().lower()
    profile = PROFILES.get(key)
    if profile is None:
        raise ValueError(f"Unsupported DB_DIALECT {name!r}, expected one of: {', '.join(sorted(PROFILES))}")
    return profile
