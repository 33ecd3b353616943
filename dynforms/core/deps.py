from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from dynforms.core.context import AppContext
from dynforms.core.errors import Unauthorized
from dynforms.core.security import username_from_token

bearer = HTTPBearer(auto_error=False)

def get_context(request: Request) -> AppContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(status_code=503, detail="Service is starting")
    return ctx

def get_current_username(
    request: Request,
    ctx: AppContext = Depends(get_context),
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> str | None:
    """Username established by the upstream single sign-on layer, or None."""
    cfg = ctx.settings
    if cfg.TRUSTED_USER_HEADER:
        forwarded = str(request.headers.get(cfg.TRUSTED_USER_HEADER) or "").strip()
        if forwarded:
            return forwarded
    token = creds.credentials if creds else request.cookies.get(cfg.AUTH_COOKIE_NAME)
    if not token:
        return None
    try:
        return username_from_token(token, cfg.AUTH_JWT_SECRET)
    except ValueError:
        raise Unauthorized("Invalid session token")
