from fastapi import Depends, Request
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.session_store import USER_ID_KEY, SessionStore
from backend.core import config
from backend.core.errors import NotFound, Unauthorized
from backend.database import SessionStoreLocal, get_db
from backend.models.user import User
from backend.repositories.users import UserRepository

_session_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = SessionStore(SessionStoreLocal)
    return _session_store


def get_session_token(request: Request) -> str:
    return jwt_handler.decode_session_cookie(request.cookies.get(config.SESSION_COOKIE_NAME))


def get_current_user_id(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> int:
    payload = store.resolve(get_session_token(request))
    return payload[USER_ID_KEY]


def get_optional_user_id(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> int | None:
    if config.SESSION_COOKIE_NAME not in request.cookies:
        return None
    return get_current_user_id(request, store)


def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    try:
        return UserRepository(db).get(user_id)
    except NotFound as exc:
        # The session outlived its user.
        raise Unauthorized('Error retrieving user') from exc
