import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user, get_session_store
from backend.auth.session_store import SessionStore
from backend.core import config
from backend.core.errors import Unauthorized
from backend.database import get_db
from backend.models.user import User
from backend.repositories.users import UserRepository
from backend.routes.user_routes import create_user
from backend.schemas import LoginRequest, MessageResponse, UserCreate, UserResponse, UserView, to_user_view

router = APIRouter(tags=['session'])

logger = logging.getLogger(__name__)


def set_session_cookie(response: Response, token: str, store: SessionStore) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=jwt_handler.encode_session_cookie(token, store.max_age),
        max_age=store.max_age_seconds,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite='lax',
        path='/',
    )


@router.post('/register', response_model=UserResponse)
def register(data: UserCreate, db: Session = Depends(get_db)):
    return create_user(data, db)


@router.post('/login', response_model=UserView)
def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    user = UserRepository(db).authenticate(data.username, data.password)
    token = store.create(user.id)
    set_session_cookie(response, token, store)
    logger.info('User %s logged in', user.username)
    return to_user_view(user)


@router.post('/logout', response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
):
    cookie = request.cookies.get(config.SESSION_COOKIE_NAME)
    if cookie:
        try:
            store.delete(jwt_handler.decode_session_cookie(cookie))
        except Unauthorized:
            # Stale or tampered cookies are cleared below all the same.
            pass
    response.delete_cookie(config.SESSION_COOKIE_NAME, path='/')
    return MessageResponse(message='Logged out')


@router.get('/session/user', response_model=UserView)
def get_session_user(current_user: User = Depends(get_current_user)):
    return to_user_view(current_user)
