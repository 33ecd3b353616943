from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from dynforms.core.cancellation import ClientDisconnected
from dynforms.core.errors import FormsError

logger = logging.getLogger(__name__)

# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FormsError)
    async def _forms_error_handler(request: Request, exc: FormsError):
        request_id = getattr(request.state, "request_id", "-")
        if exc.is_client_error:
            logger.info(
                "%s %s rejected kind=%s detail=%s request_id=%s",
                request.method,
                request.url.path,
                type(exc).__name__,
                exc.message,
                request_id,
            )
        else:
            logger.error(
                "%s %s failed kind=%s detail=%s request_id=%s",
                request.method,
                request.url.path,
                type(exc).__name__,
                exc.message,
                request_id,
                exc_info=exc,
            )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail()})

    @app.exception_handler(ClientDisconnected)
    async def _client_disconnected_handler(request: Request, exc: ClientDisconnected):
        return Response(status_code=CLIENT_CLOSED_REQUEST)
