from __future__ import annotations

import logging
import uuid
from datetime import datetime
from itertools import groupby
from typing import Callable, Iterable, Optional

from PySide6.QtCore import QObject, Signal

from todolist.domain.entities import TaskEntity, due_date_sort_key
from todolist.domain.enums import PriorityLevel
from todolist.domain.errors import TaskStoreError
from todolist.domain.events import ChangeEvent
from todolist.infra.models import TaskModel, local_now, to_entity
from todolist.services.manager import DataManager

logger = logging.getLogger(__name__)

DUE_DATE_ORDER = (TaskModel.due_date.is_(None), TaskModel.due_date.asc())


def _naive_local(value: Optional[datetime]) -> Optional[datetime]:
    # due_date is stored without a zone; aware values are kept as local wall time.
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _created_sort_key(task: TaskEntity) -> tuple[bool, datetime]:
    return (task.created_date is None, task.created_date or datetime.min)


def _priority_clause(level: PriorityLevel):
    if level == PriorityLevel.HIGH:
        return TaskModel.priority >= int(PriorityLevel.HIGH)
    if level == PriorityLevel.MEDIUM:
        return TaskModel.priority == int(PriorityLevel.MEDIUM)
    return TaskModel.priority < int(PriorityLevel.MEDIUM)


class TodoViewModel(QObject):
    """Sorted, render-ready copy of all tasks plus the intents that change them.

    The cache only ever changes from store change events; intents write
    through the manager and return without touching it. Events published on
    another thread are queued onto this object's thread before reconciling.
    """

    tasks_changed = Signal()
    error_occurred = Signal(str)
    _changes_received = Signal(object)

    def __init__(self, manager: DataManager, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._manager = manager
        self._tasks: list[TaskEntity] = []
        self._changes_received.connect(self._apply_changes)

        self._fetch_initial_tasks()
        self._manager.subscribe(self._on_store_changed)

    @property
    def tasks(self) -> tuple[TaskEntity, ...]:
        return tuple(self._tasks)

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self._tasks if task.is_completed)

    def grouped_by_priority(self) -> list[tuple[int, list[TaskEntity]]]:
        ordered = sorted(self._tasks, key=lambda task: task.priority, reverse=True)
        return [(priority, list(group)) for priority, group in groupby(ordered, key=lambda t: t.priority)]

    @staticmethod
    def completion_progress(tasks: Iterable[TaskEntity]) -> float:
        tasks = list(tasks)
        if not tasks:
            return 0.0
        return sum(1 for task in tasks if task.is_completed) / len(tasks)

    def close(self) -> None:
        self._manager.unsubscribe(self._on_store_changed)

    def _fetch_initial_tasks(self) -> None:
        models = self._manager.fetch(TaskModel, order_by=DUE_DATE_ORDER)
        self._tasks = [to_entity(model) for model in models]
        logger.info("Loaded %d tasks", len(self._tasks))

    def _on_store_changed(self, change: ChangeEvent) -> None:
        self._changes_received.emit(change)

    def _apply_changes(self, change: ChangeEvent) -> None:
        deleted_ids = change.ids("deleted")
        tasks = [task for task in self._tasks if task.id not in deleted_ids]

        known = {task.id for task in tasks}
        for task in sorted(change.inserted, key=_created_sort_key):
            if task.id not in known:
                tasks.append(task)
                known.add(task.id)

        positions = {task.id: index for index, task in enumerate(tasks)}
        for task in sorted(change.updated, key=_created_sort_key):
            if task.id in positions:
                tasks[positions[task.id]] = task
            elif task.id not in deleted_ids:
                positions[task.id] = len(tasks)
                tasks.append(task)

        tasks.sort(key=due_date_sort_key)
        self._tasks = tasks
        self.tasks_changed.emit()

    # Intents

    def add_task(self, title: str, priority: int, due_date: Optional[datetime] = None) -> uuid.UUID:
        title = title.strip()
        if not title:
            raise ValueError("Task title must not be empty")

        task = TaskModel(
            id=uuid.uuid4(),
            title=title,
            is_completed=False,
            created_date=local_now(),
            due_date=_naive_local(due_date),
            priority=int(priority),
        )

        def _add() -> None:
            self._manager.insert(task)
            self._manager.save()

        self._write("add task", _add)
        return task.id

    def update_task_title(self, task: TaskEntity, new_title: str) -> None:
        new_title = new_title.strip()
        if not new_title:
            raise ValueError("Task title must not be empty")

        def _rename(model: TaskModel) -> None:
            model.title = new_title

        self._mutate("update task title", task.id, _rename)

    def reschedule_task(self, task: TaskEntity, due_date: Optional[datetime]) -> None:
        due_date = _naive_local(due_date)

        def _reschedule(model: TaskModel) -> None:
            model.due_date = due_date

        self._mutate("reschedule task", task.id, _reschedule)

    def toggle_completion(self, task: TaskEntity) -> None:
        def _toggle(model: TaskModel) -> None:
            model.is_completed = not model.is_completed

        self._mutate("toggle task completion", task.id, _toggle)

    def delete_task(self, task: TaskEntity) -> None:
        def _delete() -> None:
            model = self._manager.fetch_by_id(TaskModel, task.id)
            self._manager.delete(model)
            self._manager.save()

        self._write("delete task", _delete)

    def complete_all(self, priority: Optional[PriorityLevel] = None) -> int:
        where = [TaskModel.is_completed.is_(False)]
        if priority is not None:
            where.append(_priority_clause(priority))

        def _complete(model: TaskModel) -> None:
            model.is_completed = True

        try:
            touched = self._manager.batch_update(TaskModel, where, _complete)
        except TaskStoreError as exc:
            self._report("complete all tasks", exc)
            raise
        return len(touched)

    def _mutate(self, action: str, task_id: uuid.UUID, change: Callable[[TaskModel], None]) -> None:
        def _apply() -> None:
            model = self._manager.fetch_by_id(TaskModel, task_id)
            change(model)
            self._manager.save()

        self._write(action, _apply)

    def _write(self, action: str, fn: Callable[[], None]) -> None:
        # Lookup, mutation and save run under one hold of the store lock.
        def _locked(_session) -> None:
            try:
                fn()
            except TaskStoreError:
                self._manager.rollback()
                raise

        try:
            self._manager.perform(_locked)
        except TaskStoreError as exc:
            self._report(action, exc)
            raise

    def _report(self, action: str, exc: TaskStoreError) -> None:
        message = f"Failed to {action}: {exc}"
        logger.error(message)
        self.error_occurred.emit(message)
