from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from fastapi import Request

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.25
_LOG = logging.getLogger("dynforms.http")


class ClientDisconnected(Exception):
    pass


async def cancel_on_disconnect(request: Request, work: Awaitable[T]) -> T:
    """Await ``work``, cancelling it if the client goes away first.

    Cancellation reaches the database driver, which aborts the running query.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                _LOG.info(
                    "client disconnected, cancelling %s %s request_id=%s",
                    request.method,
                    request.url.path,
                    getattr(request.state, "request_id", "-"),
                )
                task.cancel()
                raise ClientDisconnected(request.url.path)
    finally:
        if not task.done():
            task.cancel()
