from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from dynforms.core.config import Settings
from dynforms.core.errors import PersistenceFailed
from dynforms.models.values import TypedValue
from dynforms.services.dialects import DialectProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Statement:
    sql: str
    params: tuple[TypedValue, ...] = ()


def create_engine_from_settings(cfg: Settings) -> AsyncEngine:
    return create_async_engine(
        cfg.DATABASE_URL,
        pool_size=cfg.DB_POOL_SIZE,
        max_overflow=cfg.DB_MAX_OVERFLOW,
        pool_timeout=cfg.DB_POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
    )


def compile_statement(statement: Statement, dialect: DialectProfile):
    positions = sorted(set(dialect.placeholder_positions(statement.sql)))
    if positions and positions[-1] > len(statement.params):
        raise ValueError(
            f"statement uses placeholder {positions[-1]} but only {len(statement.params)} parameters were given"
        )
    binds = {dialect.bind_name(pos): statement.params[pos - 1].param for pos in positions}
    return text(dialect.to_named_binds(statement.sql)), binds


class Database:
    """Pooled database handle.

    Each call checks a connection out of the pool for the duration of one
    statement. Calls are bounded by ``timeout`` and abort the in-flight query
    when the calling task is cancelled.
    """

    def __init__(self, engine: AsyncEngine, dialect: DialectProfile, *, timeout: float | None = None):
        self.engine = engine
        self.dialect = dialect
        self.timeout = timeout

    async def _bounded(self, coro, statement: Statement):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("query timed out after %ss sql=%s", self.timeout, " ".join(statement.sql.split())[:200])
            raise PersistenceFailed(f"query exceeded {self.timeout} seconds") from exc

    async def fetch_all(self, statement: Statement) -> list[Sequence[Any]]:
        clause, binds = compile_statement(statement, self.dialect)

        async def _run():
            async with self.engine.connect() as conn:
                result = await conn.execute(clause, binds)
                return [tuple(row) for row in result.fetchall()]

        return await self._bounded(_run(), statement)

    async def fetch_one(self, statement: Statement) -> Sequence[Any] | None:
        clause, binds = compile_statement(statement, self.dialect)

        async def _run():
            async with self.engine.connect() as conn:
                result = await conn.execute(clause, binds)
                row = result.first()
                return tuple(row) if row is not None else None

        return await self._bounded(_run(), statement)

    async def execute_returning(self, statement: Statement) -> Any:
        """Run a write statement in its own transaction and return the first
        column of the first returned row, or None when no row came back."""
        clause, binds = compile_statement(statement, self.dialect)

        async def _run():
            async with self.engine.begin() as conn:
                result = await conn.execute(clause, binds)
                row = result.first()
                return row[0] if row is not None else None

        return await self._bounded(_run(), statement)

    async def dispose(self) -> None:
        await self.engine.dispose()
