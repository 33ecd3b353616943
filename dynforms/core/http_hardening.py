from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request, Response

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_FORM_PATH_RE = re.compile(r"^/forms/([^/]+)")
_LOG = logging.getLogger("dynforms.http")

UNCACHED_PATHS = ("/forms/",)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    # Rendered descriptions are sanitized HTML; scripts never come from form content.
    "Content-Security-Policy": "default-src 'self'; script-src 'self'; object-src 'none'; frame-ancestors 'none'; base-uri 'self'; form-action 'self'",
}
# Form pages and lists depend on who is asking.
IDENTITY_BOUND_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
    "Expires": "0",
    "Vary": "Cookie, Authorization",
}


def _request_id_from_header(raw: str | None) -> str:
    value = str(raw or "").strip()
    if _REQUEST_ID_RE.fullmatch(value):
        return value
    return uuid4().hex


def _form_path_of(path: str) -> str:
    match = _FORM_PATH_RE.match(path)
    return match.group(1) if match else "-"


def _response_security_headers(request: Request) -> dict[str, str]:
    headers = dict(SECURITY_HEADERS)
    if request.url.path.startswith(UNCACHED_PATHS):
        headers.update(IDENTITY_BOUND_HEADERS)
    return headers


def _log_request(request: Request, response: Response, request_id: str, started_at: float) -> None:
    duration_ms = (perf_counter() - started_at) * 1000.0
    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    _LOG.log(
        level,
        "%s %s form=%s status=%s duration_ms=%.2f request_id=%s",
        request.method,
        request.url.path,
        _form_path_of(request.url.path),
        response.status_code,
        duration_ms,
        request_id,
    )


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _http_hardening_middleware(request: Request, call_next):
        request_id = _request_id_from_header(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        started_at = perf_counter()

        response = await call_next(request)

        response.headers.update(_response_security_headers(request))
        response.headers[REQUEST_ID_HEADER] = request_id
        _log_request(request, response, request_id, started_at)
        return response
