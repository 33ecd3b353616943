from __future__ import annotations

import re

from dynforms.models.form import FieldType
from dynforms.services.dialects import DialectProfile

_TYPE_MODIFIER_RE = re.compile(r"\s*\([\d\s,]*\)")


def _base_type_name(native_type: str) -> str:
    # numeric(10,2) -> numeric, timestamp(3) with time zone -> timestamp with time zone
    text = _TYPE_MODIFIER_RE.sub("", str(native_type or ""))
    return " ".join(text.lower().split())


def map_type(native_type: str, dialect: DialectProfile) -> FieldType:
    """Map a catalog type name to a field type.

    Unknown names fall back to VARCHAR so that every column still renders as a
    plain input.
    """
    return dialect.type_map.get(_base_type_name(native_type), FieldType.VARCHAR)
