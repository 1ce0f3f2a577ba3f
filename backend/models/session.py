"""Server-side session records, kept in the session database."""

from sqlalchemy import JSON, Column, DateTime, String

from backend.database import SessionBase


class SessionRecord(SessionBase):
    """Maps an opaque session token to its payload."""
    __tablename__ = "sessions"

    token = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
