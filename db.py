from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Annotated, Any, Optional, TypeVar

from fastapi import Depends
from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

import settings

T = TypeVar("T")


class StoreUnavailable(RuntimeError):
    """Raised when a query is attempted without a database behind the store."""

    def __init__(self, message: str = "Database not available") -> None:
        super().__init__(message)


class Store:
    """
    Handle to the relational store.

    A store built without an engine is "unavailable": every session request
    raises StoreUnavailable and callers decide how to degrade.
    """

    def __init__(self, engine: Optional[Engine] = None) -> None:
        self.engine = engine

    @property
    def available(self) -> bool:
        return self.engine is not None

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        if self.engine is None:
            raise StoreUnavailable()
        with Session(self.engine) as session:
            yield session


def connect(url: Optional[str], echo: bool = False) -> Store:
    """
    Build a store for the given URL.
    Never raises: connection problems are logged and give an unavailable store.
    """
    if not url:
        logger.warning("DATABASE_URL is not set; running without a database")
        return Store()

    try:
        engine = create_engine(url, echo=echo, pool_pre_ping=True)
        with engine.connect():
            pass
    except (SQLAlchemyError, ImportError, ValueError) as exc:
        logger.warning("Failed to connect to the database: {}", exc)
        return Store()

    return Store(engine)


_store: Optional[Store] = None


def get_store() -> Store:
    """
    Process-wide store, connected on first use.
    Only a working connection is kept, and its tables are created when it is
    first made. While the database is down every call tries again.
    """
    global _store
    if _store is not None:
        return _store

    store = connect(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    if store.available:
        create_db_and_tables(store)
        _store = store
    return store


StoreDep = Annotated[Store, Depends(get_store)]


def create_db_and_tables(store: Store) -> None:
    """Create all tables in the database if they don't exist."""
    if not store.available:
        logger.warning("Skipping table creation: database not available")
        return

    import models  # noqa: F401  registers the tables on SQLModel.metadata

    SQLModel.metadata.create_all(store.engine)
    logger.info("Database initialized with tables.")


def read_or(default: T, func: Callable[..., T], *args: Any) -> T:
    """
    Run a read query, returning `default` when the store is unavailable.
    """
    try:
        return func(*args)
    except StoreUnavailable:
        logger.warning("Database not available; {} returns an empty result", func.__name__)
        return default
