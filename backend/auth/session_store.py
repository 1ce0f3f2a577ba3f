"""Server-side session store.

Sessions are rows in their own database keyed by an opaque token. The cookie
only ever carries the (signed) token; the payload stays on the server.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from backend.core import config
from backend.core.errors import Unauthorized
from backend.models.session import SessionRecord

logger = logging.getLogger(__name__)

USER_ID_KEY = "userID"
TOKEN_BYTES = 32


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SessionStore:
    def __init__(
        self,
        session_factory: sessionmaker,
        max_age: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.max_age = max_age or timedelta(days=config.SESSION_MAX_AGE_DAYS)
        self._clock = clock

    @property
    def max_age_seconds(self) -> int:
        return int(self.max_age.total_seconds())

    def create(self, user_id: int, max_age: timedelta | None = None) -> str:
        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = self._clock()
        record = SessionRecord(
            token=token,
            data={USER_ID_KEY: user_id},
            created_at=now,
            expires_at=now + (max_age or self.max_age),
        )
        with self._session_factory() as db:
            try:
                db.add(record)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        return token

    def resolve(self, token: str | None) -> dict:
        if not token or not isinstance(token, str):
            raise Unauthorized("Not authenticated")

        with self._session_factory() as db:
            record = db.get(SessionRecord, token)
            if record is None:
                raise Unauthorized("Invalid session")
            if record.expires_at <= self._clock():
                raise Unauthorized("Session expired")
            payload = dict(record.data or {})

        if USER_ID_KEY not in payload:
            raise Unauthorized("Invalid session")
        return payload

    def delete(self, token: str) -> None:
        with self._session_factory() as db:
            try:
                db.execute(delete(SessionRecord).where(SessionRecord.token == token))
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise

    def sweep(self) -> int:
        """Remove every expired session and return how many were removed."""
        with self._session_factory() as db:
            try:
                result = db.execute(
                    delete(SessionRecord).where(SessionRecord.expires_at <= self._clock())
                )
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        removed = result.rowcount or 0
        if removed:
            logger.info("Removed %d expired sessions", removed)
        return removed
