from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable

from sqlalchemy import event

from todolist.domain.entities import TaskEntity
from todolist.domain.events import ChangeEvent

from .db import Context
from .models import TaskModel, to_entity

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeEvent], None]


class ChangeObserver:
    """Publishes one ``ChangeEvent`` per successful commit on a context.

    Subscribers run in the committing thread and must not query the session.
    """

    def __init__(self, context: Context) -> None:
        self._session = context.session
        self._lock = threading.Lock()
        self._subscribers: list[ChangeCallback] = []
        self._reset_pending()

        event.listen(self._session, "before_flush", self._on_before_flush)
        event.listen(self._session, "after_flush", self._on_after_flush)
        event.listen(self._session, "after_commit", self._on_after_commit)
        event.listen(self._session, "after_rollback", self._on_after_rollback)

    def _reset_pending(self) -> None:
        self._inserted: dict[uuid.UUID, TaskEntity] = {}
        self._updated: dict[uuid.UUID, TaskEntity] = {}
        self._deleted: dict[uuid.UUID, TaskEntity] = {}
        self._doomed: dict[uuid.UUID, TaskEntity] = {}

    def _on_before_flush(self, session, flush_context, instances) -> None:
        # Deleted rows are gone once the flush runs; read them while they exist.
        for obj in session.deleted:
            if isinstance(obj, TaskModel):
                self._doomed[obj.id] = to_entity(obj)

    def _on_after_flush(self, session, flush_context) -> None:
        for obj in session.new:
            if isinstance(obj, TaskModel):
                self._inserted[obj.id] = to_entity(obj)

        for obj in session.dirty:
            if not isinstance(obj, TaskModel) or not session.is_modified(obj):
                continue
            if obj.id in self._inserted:
                self._inserted[obj.id] = to_entity(obj)
            else:
                self._updated[obj.id] = to_entity(obj)

        for obj in session.deleted:
            if not isinstance(obj, TaskModel):
                continue
            snapshot = self._doomed.pop(obj.id, None) or to_entity(obj)
            # Inserted and deleted within one transaction: never visible.
            if self._inserted.pop(obj.id, None) is not None:
                continue
            self._updated.pop(obj.id, None)
            self._deleted[obj.id] = snapshot

    def _on_after_commit(self, session) -> None:
        change = ChangeEvent(
            inserted=frozenset(self._inserted.values()),
            updated=frozenset(self._updated.values()),
            deleted=frozenset(self._deleted.values()),
        )
        self._reset_pending()
        if not change.is_empty:
            logger.debug(
                "Store changed inserted=%d updated=%d deleted=%d",
                len(change.inserted),
                len(change.updated),
                len(change.deleted),
            )
            self.publish(change)

    def _on_after_rollback(self, session) -> None:
        self._reset_pending()

    def publish(self, change: ChangeEvent) -> int:
        """Deliver ``change`` to every subscriber; returns how many were notified."""
        with self._lock:
            subscribers = list(self._subscribers)

        notified = 0
        for callback in subscribers:
            try:
                callback(change)
                notified += 1
            except Exception:
                logger.exception(
                    "Change subscriber %s failed",
                    getattr(callback, "__qualname__", repr(callback)),
                )
        return notified

    def subscribe(self, callback: ChangeCallback) -> bool:
        with self._lock:
            if callback in self._subscribers:
                return False
            self._subscribers.append(callback)
            return True

    def unsubscribe(self, callback: ChangeCallback) -> bool:
        with self._lock:
            try:
                self._subscribers.remove(callback)
                return True
            except ValueError:
                return False

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def detach(self) -> None:
        for name, handler in (
            ("before_flush", self._on_before_flush),
            ("after_flush", self._on_after_flush),
            ("after_commit", self._on_after_commit),
            ("after_rollback", self._on_after_rollback),
        ):
            if event.contains(self._session, name, handler):
                event.remove(self._session, name, handler)
