from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from .config import database_url

DATABASE_URL = database_url()


def make_engine(url: str):
    """Create an engine for url.

    In-memory SQLite gets a StaticPool so every session sees the same
    database; file SQLite needs check_same_thread off because runs touch the
    store from worker threads.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create all tables on bind (defaults to the module engine)."""
    from . import models  # noqa: F401  register tables on Base.metadata

    Base.metadata.create_all(bind=bind or engine)


def get_session_factory():
    """FastAPI dependency returning the session factory used by the engine.

    Tests override this to point at an in-memory database.
    """
    return SessionLocal
