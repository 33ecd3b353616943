from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FieldType(str, Enum):
    TEXT = "text"
    VARCHAR = "varchar"
    INTEGER = "integer"
    DECIMAL = "decimal"
    MONEY = "money"
    FLOAT = "float"
    BOOLEAN = "boolean"
    SELECT = "select"
    RADIO = "radio"
    TIMESTAMP = "timestamp"
    DATE = "date"


OPTION_FIELD_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO})

# Columns filled from the directory on insert, never from submitted input.
DIRECTORY_FIELD_NAMES = frozenset(
    {
        "user_employee_number",
        "user_display_name",
        "user_department",
        "user_email",
        "user_location",
        "manager",
        "manager_employee_number",
        "manager_display_name",
        "manager_department",
        "manager_email",
        "manager_location",
    }
)


@dataclass(frozen=True)
class Column:
    name: str
    native_type: str
    not_null: bool


@dataclass
class FieldMetadata:
    label: str
    description: str = ""
    placeholder: str = ""
    options: list[str] = field(default_factory=list)
    options_as_radio: bool = False
    section_heading: str = ""
    linebreak_after: bool = False
    include_in_summary: bool = False


@dataclass
class Field:
    name: str
    field_type: FieldType
    required: bool
    label: str = ""
    description: str = ""
    placeholder: str = ""
    options: list[str] = field(default_factory=list)
    section_heading: str = ""
    linebreak_after: bool = False
    include_in_summary: bool = False
    is_directory_populated: bool = False

    @property
    def has_options(self) -> bool:
        return self.field_type in OPTION_FIELD_TYPES


@dataclass
class Form:
    path: str
    name: str
    description: str
    table_name: str
    admins: frozenset[str] = frozenset()
    allow_anonymous: bool = False
    use_directory_fields: bool = False
    fields: list[Field] = field(default_factory=list)
    column_names: frozenset[str] = frozenset()

    @property
    def summary_fields(self) -> list[Field]:
        return [fld for fld in self.fields if fld.include_in_summary]

    @property
    def editable_fields(self) -> list[Field]:
        return [fld for fld in self.fields if not fld.is_directory_populated]


def is_directory_field(name: str) -> bool:
    return name in DIRECTORY_FIELD_NAMES
