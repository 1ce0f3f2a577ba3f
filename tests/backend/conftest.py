import os
from datetime import datetime, timedelta

import pytest

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('SESSION_DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('SESSION_KEY', 'test-session-key')
os.environ.setdefault('BCRYPT_ROUNDS', '4')

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from backend.auth.dependencies import get_session_store  # noqa: E402
from backend.auth.session_store import SessionStore  # noqa: E402
from backend.database import Base, SessionBase, build_engine, get_db  # noqa: E402
from backend.models import review, session, subject, user  # noqa: E402,F401


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def session_local():
    engine = build_engine('sqlite:///:memory:')
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_local):
    db = session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 5, 9, 0))


@pytest.fixture
def session_store_local():
    engine = build_engine('sqlite:///:memory:')
    SessionBase.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    finally:
        SessionBase.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def store(session_store_local, clock) -> SessionStore:
    return SessionStore(session_store_local, max_age=timedelta(days=30), clock=clock)


@pytest.fixture
def client(session_local, store):
    from backend.main import app

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
