from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session
from tmdash.config import get_settings


class Base(DeclarativeBase):
    pass


def _make_engine() -> Engine:
    url = get_settings().DATABASE_URL
    # Local SQLite databases are shared between the request threadpool threads
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


class _LazyEngine:
    """Creates the SQLAlchemy engine on first access, after settings are loaded."""

    def __init__(self):
        self._engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None

    def _get(self) -> Engine:
        if self._engine is None:
            self._engine = _make_engine()
        return self._engine

    def sessions(self) -> sessionmaker:
        if self._sessions is None:
            self._sessions = sessionmaker(autocommit=False, autoflush=False, bind=self._get())
        return self._sessions

    def connect(self):
        return self._get().connect()

    def dispose(self):
        if self._engine:
            self._engine.dispose()
        self._engine = None
        self._sessions = None

    # Expose for Alembic / direct use
    def __getattr__(self, name):
        return getattr(self._get(), name)


engine = _LazyEngine()


def SessionLocal() -> Session:
    """New session for work outside a request (Celery tasks, streamed imports).

    The caller closes it.
    """
    return engine.sessions()()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
