import os
from threading import Lock

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.core import config


def build_engine(url: str) -> Engine:
    """Create an engine, preparing SQLite files and in-memory databases."""
    parsed = make_url(url)
    if parsed.get_backend_name() != 'sqlite':
        return create_engine(url)

    database = parsed.database
    if not database or database == ':memory:':
        engine = create_engine(
            url,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
        )
    else:
        directory = os.path.dirname(database)
        if directory:
            os.makedirs(directory, exist_ok=True)
        engine = create_engine(url, connect_args={'check_same_thread': False})

    event.listen(engine, 'connect', _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


engine = build_engine(config.DATABASE_URL)
session_engine = build_engine(config.SESSION_DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

SessionStoreLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=session_engine,
)

# Users, subjects and reviews live in one database, sessions in another.
Base = declarative_base()
SessionBase = declarative_base()

_schema_lock = Lock()
_schema_checked = False


def ensure_schema() -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        # Importing the models registers their tables on the metadata.
        from backend.models import review, session, subject, user  # noqa: F401

        Base.metadata.create_all(bind=engine)
        SessionBase.metadata.create_all(bind=session_engine)

        _schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
