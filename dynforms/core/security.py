from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt

SESSION_ALGORITHM = "HS256"

def create_jwt(payload: dict, secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    data = payload.copy()
    data.update({"iat": int(now.timestamp()), "exp": int((now + expires_delta).timestamp())})
    return jwt.encode(data, secret, algorithm=SESSION_ALGORITHM)

def decode_jwt(token: str, secret: str) -> dict:
    return jwt.decode(token, secret, algorithms=[SESSION_ALGORITHM])

def username_from_token(token: str, secret: str) -> str:
    try:
        claims = decode_jwt(token, secret)
    except JWTError as exc:
        raise ValueError("invalid session token") from exc
    username = str(claims.get("sub") or "").strip()
    if not username:
        raise ValueError("session token has no subject")
    return username
