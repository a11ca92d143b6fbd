from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, TypeVar

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from todolist.domain.entities import TaskEntity
from todolist.domain.errors import BatchUpdateFailed, FetchFailed, NotFound
from todolist.domain.events import ChangeEvent
from todolist.infra.db import Context, Store
from todolist.infra.models import to_entity
from todolist.infra.observer import ChangeCallback, ChangeObserver

logger = logging.getLogger(__name__)

M = TypeVar("M")
T = TypeVar("T")


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _build_query(model: type, where: Any = None, order_by: Any = None, limit: Optional[int] = None):
    stmt = select(model)
    clauses = _as_tuple(where)
    if clauses:
        stmt = stmt.where(*clauses)
    ordering = _as_tuple(order_by)
    if ordering:
        stmt = stmt.order_by(*ordering)
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


class DataManager:
    """The one entry point the rest of the app uses to reach storage."""

    def __init__(self, store: Store, observer: ChangeObserver | None = None) -> None:
        self._store = store
        self._observer = observer or ChangeObserver(store.context())

    @property
    def context(self) -> Context:
        return self._store.context()

    def perform(self, fn: Callable[[Session], T]) -> T:
        return self.context.perform(fn)

    def fetch(
        self,
        model: type[M],
        where: Any = None,
        order_by: Any = None,
        limit: Optional[int] = None,
    ) -> list[M]:
        stmt = _build_query(model, where, order_by, limit)
        try:
            return self.perform(lambda session: list(session.scalars(stmt)))
        except SQLAlchemyError as exc:
            logger.error("Fetching %s failed: %s", model.__name__, exc)
            raise FetchFailed(model.__name__, exc) from exc

    def fetch_by_id(self, model: type[M], id: Any) -> M:
        try:
            found = self.perform(lambda session: session.get(model, id))
        except SQLAlchemyError as exc:
            logger.error("Fetching %s %s failed: %s", model.__name__, id, exc)
            raise FetchFailed(model.__name__, exc) from exc
        if found is None:
            raise NotFound(model.__name__, id)
        return found

    def insert(self, obj: Any) -> None:
        self.perform(lambda session: session.add(obj))

    def delete(self, obj: Any) -> None:
        self.perform(lambda session: session.delete(obj))

    def save(self) -> None:
        self._store.save()

    def rollback(self) -> None:
        self.context.rollback()

    def batch_update(
        self,
        model: type[M],
        where: Any,
        update_fn: Callable[[M], None],
    ) -> list[TaskEntity]:
        """Apply ``update_fn`` to every match on a background context.

        The background commit is merged into the main context afterwards and
        announced as a single change event with every touched row as updated.
        """
        name = model.__name__
        background = self._store.background_context()
        stmt = _build_query(model, where)

        def _apply(session: Session) -> list[M]:
            rows = list(session.scalars(stmt))
            for row in rows:
                update_fn(row)
            session.commit()
            return rows

        try:
            try:
                rows = background.perform(_apply)
            except Exception as exc:  # noqa: BLE001
                logger.error("Batch update of %s failed: %s", name, exc)
                background.rollback()
                raise BatchUpdateFailed(name, exc) from exc
            merged = self._merge_into_main(model, rows)
        finally:
            background.close()

        logger.debug("Batch updated %d %s rows", len(merged), name)
        if merged:
            self._observer.publish(ChangeEvent(updated=frozenset(merged)))
        return merged

    def _merge_into_main(self, model: type, rows: Iterable[Any]) -> list[TaskEntity]:
        # Field by field: unsaved edits in the main context win, everything
        # else takes the value the background context committed.
        def _merge(session: Session) -> list[TaskEntity]:
            merged = []
            for row in rows:
                key = session.identity_key(model, inspect(row).identity)
                local = session.identity_map.get(key)
                if local is None:
                    merged.append(to_entity(row))
                    continue
                state = inspect(local)
                for attr in state.mapper.column_attrs:
                    if state.attrs[attr.key].history.has_changes():
                        continue
                    set_committed_value(local, attr.key, getattr(row, attr.key))
                merged.append(to_entity(local))
            return merged

        return self.perform(_merge)

    def subscribe(self, callback: ChangeCallback) -> bool:
        return self._observer.subscribe(callback)

    def unsubscribe(self, callback: ChangeCallback) -> bool:
        return self._observer.unsubscribe(callback)

    def close(self) -> None:
        self._observer.detach()
