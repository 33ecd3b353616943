from __future__ import annotations

import re
from typing import Iterable

from dynforms.core.errors import InvalidIdentifier

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,127}$")


def require_identifier(kind: str, name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_RE.fullmatch(name):
        raise InvalidIdentifier(kind, str(name))
    return name


def require_catalog_columns(names: Iterable[str], catalog: frozenset[str]) -> list[str]:
    out: list[str] = []
    for name in names:
        require_identifier("column", name)
        if name not in catalog:
            raise InvalidIdentifier("column", name)
        out.append(name)
    return out
