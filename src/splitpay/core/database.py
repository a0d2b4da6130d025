"""Database module."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger("database")


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across threads because request handlers
    hand blocking work to a worker thread. In-memory SQLite additionally uses
    a single static connection so every session sees the same database.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Build a session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables known to the declarative base."""
    # Imported for its side effect of registering the tables on Base.metadata.
    from splitpay.core import models  # noqa: F401  pylint: disable=import-outside-toplevel

    logger.info("Creating database tables on %s", engine.url.render_as_string(hide_password=True))
    Base.metadata.create_all(bind=engine)
