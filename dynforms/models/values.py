"""Typed query parameters.

Every value bound into a generated statement is one of these variants, built
by the value coercion layer. Drivers receive ``.param``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any


class TypedValue:
    __slots__ = ()

    value: Any

    @property
    def param(self) -> Any:
        return self.value


@dataclass(frozen=True)
class TextValue(TypedValue):
    value: str


@dataclass(frozen=True)
class IntegerValue(TypedValue):
    value: int


@dataclass(frozen=True)
class DecimalValue(TypedValue):
    value: Decimal


@dataclass(frozen=True)
class FloatValue(TypedValue):
    value: float


@dataclass(frozen=True)
class BooleanValue(TypedValue):
    value: bool


@dataclass(frozen=True)
class TimestampValue(TypedValue):
    # "YYYY-MM-DD HH:MM+HH:MM", cast by the database on assignment
    value: str


@dataclass(frozen=True)
class NullValue(TypedValue):
    value: None = None


NULL = NullValue()
