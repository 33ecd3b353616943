from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from dynforms.core.errors import Unauthorized
from dynforms.models.form import Form

DEFAULT_ANONYMOUS_USERNAME = "anonymous"


class Role(str, Enum):
    ADMIN = "admin"
    OWNER = "owner"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Caller:
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def classify_caller(
    username: str | None,
    form: Form,
    *,
    anonymous_username: str = DEFAULT_ANONYMOUS_USERNAME,
) -> Caller:
    """Admin, owner or anonymous caller for ``form``.

    Raises Unauthorized when there is no identity and the form does not allow
    anonymous access. Anonymous callers are never admins, even if the synthetic
    name is listed in ``form.admins``.
    """
    name = str(username or "").strip()
    if not name:
        if not form.allow_anonymous:
            raise Unauthorized("Check directory integration - unable to determine logged in user")
        return Caller(username=anonymous_username, role=Role.ANONYMOUS)
    if name in form.admins:
        return Caller(username=name, role=Role.ADMIN)
    return Caller(username=name, role=Role.OWNER)
