from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from todolist.domain.errors import SaveFailed, StoreLoadError

logger = logging.getLogger(__name__)

Base = declarative_base()

T = TypeVar("T")

IN_MEMORY_URL = "sqlite://"


class Context:
    """A confinement region over one session.

    Every read and write goes through ``perform`` which holds the store-wide
    lock, so the backing file only ever sees one writer at a time.
    """

    def __init__(
        self,
        session: Session,
        lock: threading.RLock,
        name: str,
        parent: Optional["Context"] = None,
    ) -> None:
        self._session = session
        self._lock = lock
        self.name = name
        self.parent = parent

    @property
    def session(self) -> Session:
        return self._session

    def perform(self, fn: Callable[[Session], T]) -> T:
        with self._lock:
            return fn(self._session)

    @property
    def has_changes(self) -> bool:
        session = self._session
        if session.new or session.deleted:
            return True
        return any(session.is_modified(obj) for obj in session.dirty)

    def save(self) -> None:
        with self._lock:
            if not self.has_changes:
                return
            try:
                self._session.commit()
            except SQLAlchemyError as exc:
                logger.error("Save failed in %s context: %s", self.name, exc)
                self._session.rollback()
                raise SaveFailed(exc) from exc
            logger.debug("Saved %s context", self.name)

    def rollback(self) -> None:
        with self._lock:
            self._session.rollback()

    def close(self) -> None:
        with self._lock:
            self._session.close()


def _build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    kwargs: dict = {"pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, **kwargs)


class Store:
    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._lock = threading.RLock()
        try:
            self._engine = _build_engine(database_url)
            self._create_schema()
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError, ImportError, ValueError) as exc:
            logger.exception("Failed to load store at %s", database_url)
            raise StoreLoadError(database_url, exc) from exc

        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._main = Context(self._session_factory(), self._lock, name="main")
        logger.info("Store ready url=%s", self._engine.url.render_as_string(hide_password=True))

    @classmethod
    def in_memory(cls) -> "Store":
        return cls(IN_MEMORY_URL)

    def _create_schema(self) -> None:
        from . import models  # noqa: F401  registers TaskModel on Base

        Base.metadata.create_all(self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def context(self) -> Context:
        return self._main

    def background_context(self) -> Context:
        return Context(self._session_factory(), self._lock, name="background", parent=self._main)

    def save(self) -> None:
        self._main.save()

    def close(self) -> None:
        self._main.close()
        self._engine.dispose()
        logger.info("Store closed")
