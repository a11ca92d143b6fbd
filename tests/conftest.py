from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import pytest

from todolist.infra.db import Store
from todolist.infra.models import TaskModel
from todolist.services.manager import DataManager

NOW = datetime(2026, 1, 10, 9, 0, 0)


@pytest.fixture()
def store() -> Store:
    store = Store.in_memory()
    yield store
    store.close()


@pytest.fixture()
def manager(store: Store) -> DataManager:
    manager = DataManager(store)
    yield manager
    manager.close()


@pytest.fixture()
def add_row(manager: DataManager):
    """Insert and save a task row directly through the manager."""

    def _add(title: str, *, due_in_days: int | None = None, priority: int = 1, completed: bool = False) -> TaskModel:
        task = TaskModel(
            id=uuid.uuid4(),
            title=title,
            is_completed=completed,
            created_date=NOW,
            due_date=NOW + timedelta(days=due_in_days) if due_in_days is not None else None,
            priority=priority,
        )
        manager.insert(task)
        manager.save()
        return task

    return _add


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtCore import QCoreApplication

    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture()
def view_model(qapp, manager: DataManager):
    from todolist.services.view_model import TodoViewModel

    view_model = TodoViewModel(manager)
    yield view_model
    view_model.close()
