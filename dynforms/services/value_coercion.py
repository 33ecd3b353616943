"""Conversion between submitted strings, query parameters and display strings."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from dynforms.core.errors import ParseFailed
from dynforms.models.form import Field, FieldType
from dynforms.models.values import (
    NULL,
    BooleanValue,
    DecimalValue,
    FloatValue,
    IntegerValue,
    TextValue,
    TimestampValue,
    TypedValue,
)

logger = logging.getLogger(__name__)

DATE_TIME_LOCAL = "%Y-%m-%dT%H:%M"
DATE_LOCAL = "%Y-%m-%d"
# datetime-local inputs send seconds only when the step attribute asks for them
DATE_TIME_LOCAL_INPUTS = (DATE_TIME_LOCAL, "%Y-%m-%dT%H:%M:%S")
BOOLEAN_TRUE = "1"
UTC_SUFFIX = "+00:00"
MONEY_QUANTUM = Decimal("0.01")

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_NUMBER_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_MONEY_NOISE_RE = re.compile(r"[^0-9.+-]")


def parse_integer(raw: str) -> int:
    if not _INTEGER_RE.fullmatch(raw or ""):
        raise ValueError(f"invalid integer {raw!r}")
    return int(raw)


def _parse_decimal(raw: str) -> Decimal:
    if not _NUMBER_RE.fullmatch(raw):
        raise ValueError(f"invalid decimal {raw!r}")
    return Decimal(raw)


def _parse_float(raw: str) -> float:
    if not _NUMBER_RE.fullmatch(raw):
        raise ValueError(f"invalid float {raw!r}")
    return float(raw)


def _check_layout(raw: str, layouts: tuple[str, ...]) -> None:
    for layout in layouts:
        try:
            datetime.strptime(raw, layout)
            return
        except ValueError:
            continue
    raise ValueError(f"{raw!r} does not match {layouts[0]}")


def tz_offset_suffix(minutes_raw: str | None) -> str:
    """``+HH:MM`` suffix for a browser offset in minutes west of UTC.

    Browsers report ``Date.getTimezoneOffset()``, so the sign is inverted:
    ``-60`` is ``+01:00``. Unparseable input falls back to UTC.
    """
    try:
        minutes_west = parse_integer(str(minutes_raw or "").strip())
    except ValueError as exc:
        logger.warning("error parsing timezone offset, saving with UTC: %s", exc)
        return UTC_SUFFIX
    offset = -minutes_west
    sign = "+" if offset >= 0 else "-"
    hours, minutes = divmod(abs(offset), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def decode(
    field_type: FieldType,
    raw: str,
    required: bool,
    *,
    field_name: str = "",
    tz_offset: str | None = None,
) -> TypedValue:
    raw = "" if raw is None else str(raw)

    # Booleans are never null: anything but the sentinel is false.
    if field_type == FieldType.BOOLEAN:
        return BooleanValue(raw == BOOLEAN_TRUE)

    if raw == "" and not required:
        return NULL

    if field_type == FieldType.INTEGER:
        try:
            return IntegerValue(parse_integer(raw))
        except ValueError as exc:
            raise ParseFailed(field_name, raw, "int") from exc
    if field_type in (FieldType.DECIMAL, FieldType.MONEY):
        try:
            return DecimalValue(_parse_decimal(raw))
        except ValueError as exc:
            raise ParseFailed(field_name, raw, field_type.value) from exc
    if field_type == FieldType.FLOAT:
        try:
            return FloatValue(_parse_float(raw))
        except ValueError as exc:
            raise ParseFailed(field_name, raw, "float") from exc
    if field_type == FieldType.TIMESTAMP:
        try:
            _check_layout(raw, DATE_TIME_LOCAL_INPUTS)
        except ValueError as exc:
            raise ParseFailed(field_name, raw, "timestamp") from exc
        return TimestampValue(raw.replace("T", " ") + tz_offset_suffix(tz_offset))
    if field_type == FieldType.DATE:
        try:
            _check_layout(raw, (DATE_LOCAL,))
        except ValueError as exc:
            raise ParseFailed(field_name, raw, "date") from exc
    return TextValue(raw)


def decode_field(field: Field, raw: str, *, tz_offset: str | None = None) -> TypedValue:
    return decode(field.field_type, raw, field.required, field_name=field.name, tz_offset=tz_offset)


def _format_float(value: float) -> str:
    if not isinstance(value, (int, float)):
        return str(value)
    text = repr(float(value))
    if text.endswith(".0"):
        return text[:-2]
    return text


def _format_decimal(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def _format_money(value: Any) -> str:
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float)):
            amount = Decimal(str(value))
        else:
            amount = Decimal(_MONEY_NOISE_RE.sub("", str(value)))
    except InvalidOperation:
        logger.warning("error reading money value %r, returning it unformatted", value)
        return str(value)
    return str(amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP))


def _format_timestamp(value: Any, layout: str) -> str:
    if isinstance(value, (datetime, date)):
        return value.strftime(layout)
    return str(value)


def encode(field_type: FieldType, value: Any) -> str:
    """Display string for a database value. Never fails; null is empty."""
    if value is None:
        return ""
    if field_type == FieldType.BOOLEAN:
        return BOOLEAN_TRUE if bool(value) else ""
    if field_type == FieldType.INTEGER:
        return str(value) if isinstance(value, str) else str(int(value))
    if field_type == FieldType.DECIMAL:
        return _format_decimal(value)
    if field_type == FieldType.MONEY:
        return _format_money(value)
    if field_type == FieldType.FLOAT:
        return _format_float(value)
    if field_type == FieldType.TIMESTAMP:
        return _format_timestamp(value, DATE_TIME_LOCAL)
    if field_type == FieldType.DATE:
        return _format_timestamp(value, DATE_LOCAL)
    return str(value)
