"""SQLAlchemy 2 engine and session. Sqlite for development, PostgreSQL for deployment."""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    """Declarative base for models."""

    pass


def get_engine_url() -> str:
    """Database URL from env or default sqlite."""
    return os.environ.get(
        "DATABASE_URL",
        "sqlite:///quota_observer.sqlite",
    )


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    # In-memory sqlite (tests): every session must see the same connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(get_engine_url(), echo=False, **_engine_kwargs(get_engine_url()))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create all tables (for dev). In production use Alembic migrations."""
    from quota_observer import models_db  # noqa: F401  register tables on Base.metadata

    Base.metadata.create_all(bind=engine)
