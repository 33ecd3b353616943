from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.concurrency import run_in_threadpool

from dynforms.core.config import Settings
from dynforms.core.errors import DirectoryLookupFailed
from dynforms.db.session import Database, create_engine_from_settings
from dynforms.services.dialects import SQLSERVER, DialectProfile, get_dialect
from dynforms.services.directory import Directory, LdapDirectory

logger = logging.getLogger(__name__)

# ODBC SQL type code for datetimeoffset, which pyodbc does not convert itself.
SQL_SS_TIMESTAMPOFFSET = -155


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    dialect: DialectProfile
    db: Database
    directory: Directory | None = None


def _datetimeoffset_from_odbc(value: bytes) -> datetime:
    tup = struct.unpack("<6hI2h", value)
    return datetime(
        tup[0], tup[1], tup[2], tup[3], tup[4], tup[5], tup[6] // 1000,
        timezone(timedelta(hours=tup[7], minutes=tup[8])),
    )


def _install_sqlserver_converters(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.add_output_converter(SQL_SS_TIMESTAMPOFFSET, _datetimeoffset_from_odbc)


async def _probe_directory(cfg: Settings) -> Directory | None:
    if not cfg.directory_configured:
        return None
    directory = LdapDirectory.from_settings(cfg)
    try:
        await run_in_threadpool(directory.ping)
    except DirectoryLookupFailed as exc:
        logger.warning("directory unavailable at startup, directory fields disabled: %s", exc)
        return None
    logger.info("directory connected host=%s", cfg.LDAP_HOST)
    return directory


async def build_context(cfg: Settings) -> AppContext:
    dialect = get_dialect(cfg.DB_DIALECT)
    engine = create_engine_from_settings(cfg)
    if dialect.name == SQLSERVER:
        _install_sqlserver_converters(engine)
    db = Database(engine, dialect, timeout=cfg.QUERY_TIMEOUT_SECONDS)
    directory = await _probe_directory(cfg)
    logger.info("context ready dialect=%s directory=%s", dialect.name, "on" if directory else "off")
    return AppContext(settings=cfg, dialect=dialect, db=db, directory=directory)
