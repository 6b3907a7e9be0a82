"""Database package: engine, session factory, init_db(), get_session()."""

import threading
from contextlib import contextmanager
from typing import Callable, ContextManager, Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stock_sync.config import DATABASE_URL
from stock_sync.db.base import Base

# Import all models so Base.metadata has all tables
from stock_sync.db.models import Product, SyncLog  # noqa: F401

SessionScope = Callable[[], ContextManager[Session]]

_init_lock = threading.Lock()
_engine = None
_SessionLocal: sessionmaker | None = None


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Create engine usable from worker threads; in-memory SQLite shares one connection."""
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False)


def make_session_scope(engine: Engine) -> SessionScope:
    """Return a get_session-style context manager bound to this engine."""
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @contextmanager
    def session_scope() -> Generator[Session, None, None]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return session_scope


def init_db() -> None:
    """Create engine and tables once."""
    global _engine, _SessionLocal
    with _init_lock:
        if _SessionLocal is not None:
            return
        _engine = make_engine(DATABASE_URL)
        Base.metadata.create_all(bind=_engine)
        _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager yielding a DB session. Calls init_db() on first use."""
    init_db()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
