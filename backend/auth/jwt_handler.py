from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config
from backend.core.errors import Unauthorized


def encode_session_cookie(token: str, max_age: timedelta | None = None) -> str:
    """Sign an opaque session token for transport in the session cookie."""
    lifetime = max_age or timedelta(days=config.SESSION_MAX_AGE_DAYS)
    issued_at = datetime.now(timezone.utc)
    payload = {"sid": token, "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(payload, config.SESSION_KEY, algorithm=config.SESSION_ALGORITHM)


def decode_session_cookie(value: str | None) -> str:
    if not value:
        raise Unauthorized("Not authenticated")
    try:
        payload = jwt.decode(value, config.SESSION_KEY, algorithms=[config.SESSION_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise Unauthorized("Session expired") from exc
    except jwt.InvalidTokenError as exc:
        raise Unauthorized("Invalid session") from exc

    token = payload.get("sid")
    if not isinstance(token, str) or not token:
        raise Unauthorized("Invalid session")
    return token
