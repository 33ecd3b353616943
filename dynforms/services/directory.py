from __future__ import annotations

import logging
from typing import Any, Protocol

from ldap3 import SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from dynforms.core.config import Settings
from dynforms.core.errors import DirectoryLookupFailed

logger = logging.getLogger(__name__)

SEARCH_SIZE_LIMIT = 10
USER_ATTRIBUTES = ["manager", "employeeNumber", "sAMAccountName", "mail", "l", "displayName", "department"]
MANAGER_ATTRIBUTES = ["employeeNumber", "sAMAccountName", "mail", "l", "displayName", "department"]

# form column -> directory attribute
USER_FIELD_ATTRIBUTES = {
    "user_employee_number": "employeeNumber",
    "user_display_name": "displayName",
    "user_department": "department",
    "user_email": "mail",
    "user_location": "l",
}
MANAGER_FIELD_ATTRIBUTES = {
    "manager": "sAMAccountName",
    "manager_employee_number": "employeeNumber",
    "manager_display_name": "displayName",
    "manager_department": "department",
    "manager_email": "mail",
    "manager_location": "l",
}


class Directory(Protocol):
    def lookup_identity(self, username: str) -> dict[str, str]:
        ...


def _first_value(attributes: dict[str, Any], name: str) -> str:
    value = attributes.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return "" if value is None else str(value)


def identity_attributes(user: dict[str, Any], manager: dict[str, Any]) -> dict[str, str]:
    out = {field: _first_value(user, attr) for field, attr in USER_FIELD_ATTRIBUTES.items()}
    out.update({field: _first_value(manager, attr) for field, attr in MANAGER_FIELD_ATTRIBUTES.items()})
    return out


class LdapDirectory:
    """Active Directory lookups over ldap3.

    Each call opens and binds its own connection, so concurrent requests never
    share a handle. Calls block; run them in a worker thread.
    """

    def __init__(self, host: str, username: str, password: str, base_dn: str, *, timeout: int = 10):
        self.base_dn = base_dn
        self.username = username
        self.password = password
        self.timeout = timeout
        self.server = Server(host, connect_timeout=timeout)

    @classmethod
    def from_settings(cls, cfg: Settings) -> "LdapDirectory":
        return cls(
            cfg.LDAP_HOST,
            cfg.LDAP_USERNAME,
            cfg.LDAP_PASSWORD,
            cfg.LDAP_BASE_DN,
            timeout=cfg.LDAP_TIMEOUT_SECONDS,
        )

    def _connect(self) -> Connection:
        return Connection(
            self.server,
            user=self.username or None,
            password=self.password or None,
            auto_bind=True,
            read_only=True,
            receive_timeout=self.timeout,
        )

    def ping(self) -> None:
        try:
            conn = self._connect()
            conn.unbind()
        except LDAPException as exc:
            raise DirectoryLookupFailed(f"unable to bind to directory {self.server.host}") from exc

    @staticmethod
    def _search_one(conn: Connection, base: str, search_filter: str, attributes: list[str]) -> dict[str, Any] | None:
        conn.search(
            search_base=base,
            search_filter=search_filter,
            search_scope=SUBTREE,
            attributes=attributes,
            size_limit=SEARCH_SIZE_LIMIT,
        )
        if not conn.entries:
            return None
        return conn.entries[0].entry_attributes_as_dict

    def lookup_identity(self, username: str) -> dict[str, str]:
        account_filter = f"(&(objectClass=user)(sAMAccountName={escape_filter_chars(username)}))"
        try:
            conn = self._connect()
            try:
                user = self._search_one(conn, self.base_dn, account_filter, USER_ATTRIBUTES)
                if user is None:
                    raise DirectoryLookupFailed(f"unable to find details for user {username}")
                manager_dn = _first_value(user, "manager")
                if not manager_dn:
                    raise DirectoryLookupFailed(f"no manager recorded for user {username}")
                manager = self._search_one(conn, manager_dn, "(objectClass=user)", MANAGER_ATTRIBUTES)
                if manager is None:
                    raise DirectoryLookupFailed(f"unable to find details for manager {manager_dn}")
            finally:
                conn.unbind()
        except LDAPException as exc:
            raise DirectoryLookupFailed(f"unable to query ldap for account {username}") from exc
        logger.debug("directory lookup ok username=%s", username)
        return identity_attributes(user, manager)
