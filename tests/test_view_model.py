from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from todolist.domain.entities import TaskEntity
from todolist.domain.enums import PriorityLevel
from todolist.domain.errors import NotFound, SaveFailed
from todolist.domain.events import ChangeEvent
from todolist.infra.db import Store
from todolist.infra.models import TaskModel, to_entity
from todolist.services.manager import DataManager
from todolist.services.view_model import DUE_DATE_ORDER, TodoViewModel

TOMORROW = datetime.now().replace(microsecond=0) + timedelta(days=1)


def _find(view_model: TodoViewModel, task_id: uuid.UUID) -> TaskEntity:
    return next(task for task in view_model.tasks if task.id == task_id)


def test_initial_fetch_is_sorted_with_undated_last(qapp, manager: DataManager, add_row) -> None:
    add_row("undated")
    add_row("later", due_in_days=5)
    add_row("sooner", due_in_days=1)

    view_model = TodoViewModel(manager)

    assert [task.title for task in view_model.tasks] == ["sooner", "later", "undated"]
    view_model.close()


def test_buy_milk_scenario(view_model: TodoViewModel, manager: DataManager) -> None:
    view_model.add_task("Buy milk", priority=1, due_date=TOMORROW)

    stored = manager.fetch(TaskModel)
    assert [task.title for task in stored] == ["Buy milk"]
    assert stored[0].is_completed is False
    assert [task.title for task in view_model.tasks] == ["Buy milk"]


def test_added_task_round_trips_through_fetch_by_id(view_model: TodoViewModel, manager: DataManager) -> None:
    task_id = view_model.add_task("Call dentist", priority=2, due_date=TOMORROW)

    cached = _find(view_model, task_id)
    assert to_entity(manager.fetch_by_id(TaskModel, task_id)) == cached
    assert cached.created_date is not None
    assert cached.priority == 2


def test_due_date_order_is_independent_of_insertion(view_model: TodoViewModel, manager: DataManager) -> None:
    view_model.add_task("A", priority=1, due_date=TOMORROW + timedelta(days=1))
    view_model.add_task("B", priority=1, due_date=TOMORROW)

    assert [task.title for task in view_model.tasks] == ["B", "A"]
    assert [task.title for task in manager.fetch(TaskModel, order_by=DUE_DATE_ORDER)] == ["B", "A"]


def test_double_toggle_restores_completion(view_model: TodoViewModel, manager: DataManager) -> None:
    task_id = view_model.add_task("Toggle me", priority=0)

    view_model.toggle_completion(_find(view_model, task_id))
    assert _find(view_model, task_id).is_completed is True

    view_model.toggle_completion(_find(view_model, task_id))
    assert _find(view_model, task_id).is_completed is False
    assert manager.fetch_by_id(TaskModel, task_id).is_completed is False


def test_toggle_from_stale_snapshot_uses_stored_state(view_model: TodoViewModel) -> None:
    task_id = view_model.add_task("Stale", priority=0)
    stale = _find(view_model, task_id)

    view_model.toggle_completion(stale)
    view_model.toggle_completion(stale)

    assert _find(view_model, task_id).is_completed is False


def test_rename_replaces_cached_task_in_place(view_model: TodoViewModel) -> None:
    task_id = view_model.add_task("Old title", priority=1, due_date=TOMORROW)

    view_model.update_task_title(_find(view_model, task_id), "  New title ")

    assert [task.title for task in view_model.tasks] == ["New title"]


def test_reschedule_resorts_the_cache(view_model: TodoViewModel) -> None:
    first = view_model.add_task("first", priority=1, due_date=TOMORROW)
    view_model.add_task("second", priority=1, due_date=TOMORROW + timedelta(days=1))

    view_model.reschedule_task(_find(view_model, first), TOMORROW + timedelta(days=7))

    assert [task.title for task in view_model.tasks] == ["second", "first"]


def test_delete_removes_task_everywhere(view_model: TodoViewModel, manager: DataManager) -> None:
    keep = view_model.add_task("keep", priority=1)
    drop = view_model.add_task("drop", priority=1)

    view_model.delete_task(_find(view_model, drop))

    assert [task.id for task in view_model.tasks] == [keep]
    assert drop not in {task.id for task in manager.fetch(TaskModel)}
    with pytest.raises(NotFound):
        manager.fetch_by_id(TaskModel, drop)


def test_blank_title_is_rejected_before_storage(view_model: TodoViewModel, manager: DataManager) -> None:
    with pytest.raises(ValueError):
        view_model.add_task("   ", priority=1)

    assert manager.fetch(TaskModel) == []
    assert view_model.tasks == ()


def test_failed_save_leaves_cache_unchanged_and_reports(
    view_model: TodoViewModel, manager: DataManager, monkeypatch
) -> None:
    view_model.add_task("existing", priority=1)
    before = view_model.tasks
    errors: list[str] = []
    view_model.error_occurred.connect(errors.append)

    def _failing_save() -> None:
        raise SaveFailed(RuntimeError("disk full"))

    monkeypatch.setattr(manager, "save", _failing_save)

    with pytest.raises(SaveFailed):
        view_model.add_task("never stored", priority=1)

    assert view_model.tasks == before
    assert not manager.context.has_changes
    assert len(errors) == 1
    assert "add task" in errors[0]


def test_intent_on_missing_task_raises_not_found(view_model: TodoViewModel) -> None:
    ghost = TaskEntity(
        id=uuid.uuid4(),
        title="ghost",
        is_completed=False,
        created_date=None,
        due_date=None,
        priority=0,
    )
    errors: list[str] = []
    view_model.error_occurred.connect(errors.append)

    with pytest.raises(NotFound):
        view_model.update_task_title(ghost, "still a ghost")

    assert view_model.tasks == ()
    assert len(errors) == 1


def test_grouping_and_progress(view_model: TodoViewModel) -> None:
    high = view_model.add_task("urgent", priority=2)
    view_model.add_task("chore", priority=0)
    view_model.add_task("errand", priority=1)
    view_model.add_task("critical", priority=3)
    view_model.toggle_completion(_find(view_model, high))

    groups = view_model.grouped_by_priority()

    assert [priority for priority, _ in groups] == [3, 2, 1, 0]
    assert TodoViewModel.completion_progress(groups[1][1]) == 1.0
    assert TodoViewModel.completion_progress([]) == 0.0
    assert view_model.completed_count == 1


def test_complete_all_for_one_priority_bucket(view_model: TodoViewModel) -> None:
    view_model.add_task("urgent", priority=2)
    view_model.add_task("very urgent", priority=4)
    view_model.add_task("someday", priority=0)

    count = view_model.complete_all(PriorityLevel.HIGH)

    assert count == 2
    completed = {task.title for task in view_model.tasks if task.is_completed}
    assert completed == {"urgent", "very urgent"}


def test_changes_from_a_worker_thread_are_applied_on_the_owner_thread(
    qapp, view_model: TodoViewModel
) -> None:
    view_model.add_task("one", priority=1)
    view_model.add_task("two", priority=1)

    worker = threading.Thread(target=view_model.complete_all)
    worker.start()
    worker.join(timeout=10)
    qapp.processEvents()

    assert all(task.is_completed for task in view_model.tasks)
    assert len(view_model.tasks) == 2


def test_reconcile_ignores_duplicate_inserts(view_model: TodoViewModel) -> None:
    task_id = view_model.add_task("only once", priority=1)
    cached = _find(view_model, task_id)

    view_model._apply_changes(ChangeEvent(inserted=frozenset({cached})))

    assert [task.id for task in view_model.tasks] == [task_id]


def test_reconcile_handles_mixed_event(view_model: TodoViewModel) -> None:
    keep = view_model.add_task("keep", priority=1, due_date=TOMORROW + timedelta(days=2))
    gone = view_model.add_task("gone", priority=1)
    kept = _find(view_model, keep)
    fresh = TaskEntity(
        id=uuid.uuid4(),
        title="fresh",
        is_completed=False,
        created_date=None,
        due_date=TOMORROW,
        priority=1,
    )
    renamed = TaskEntity(
        id=kept.id,
        title="kept and renamed",
        is_completed=kept.is_completed,
        created_date=kept.created_date,
        due_date=kept.due_date,
        priority=kept.priority,
    )

    view_model._apply_changes(
        ChangeEvent(
            inserted=frozenset({fresh}),
            updated=frozenset({renamed}),
            deleted=frozenset({_find(view_model, gone)}),
        )
    )

    assert [task.title for task in view_model.tasks] == ["fresh", "kept and renamed"]


def test_undated_task_sorts_after_dated_ones_in_the_cache(view_model: TodoViewModel) -> None:
    view_model.add_task("undated", priority=1)
    view_model.add_task("dated", priority=1, due_date=TOMORROW)

    assert [task.title for task in view_model.tasks] == ["dated", "undated"]


def test_clearing_a_due_date_moves_the_task_last(view_model: TodoViewModel) -> None:
    first = view_model.add_task("first", priority=1, due_date=TOMORROW)
    view_model.add_task("second", priority=1, due_date=TOMORROW + timedelta(days=1))

    view_model.reschedule_task(_find(view_model, first), None)

    assert [task.title for task in view_model.tasks] == ["second", "first"]
    assert _find(view_model, first).due_date is None


def test_aware_due_dates_are_kept_as_local_time(view_model: TodoViewModel, manager: DataManager) -> None:
    naive = view_model.add_task("naive", priority=1, due_date=TOMORROW)
    aware = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=2)

    task_id = view_model.add_task("aware", priority=1, due_date=aware)

    cached = _find(view_model, task_id)
    assert [task.title for task in view_model.tasks] == ["naive", "aware"]
    assert cached.due_date == aware.astimezone().replace(tzinfo=None)
    assert to_entity(manager.fetch_by_id(TaskModel, task_id)) == cached

    view_model.reschedule_task(_find(view_model, naive), aware + timedelta(days=1))

    assert [task.title for task in view_model.tasks] == ["aware", "naive"]
    assert _find(view_model, naive).due_date.tzinfo is None


def test_aware_due_date_survives_reopening_the_file(qapp, tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'tasks.sqlite3'}"
    store = Store(url)
    manager = DataManager(store)
    view_model = TodoViewModel(manager)
    task_id = view_model.add_task(
        "aware", priority=1, due_date=datetime(2026, 1, 3, 12, 0, tzinfo=timezone.utc)
    )
    cached = _find(view_model, task_id)
    view_model.close()
    manager.close()
    store.close()

    reopened = Store(url)
    try:
        loaded = reopened.context().perform(lambda session: session.get(TaskModel, task_id))
        assert to_entity(loaded) == cached
    finally:
        reopened.close()


def test_intent_holds_the_store_lock_until_saved(
    view_model: TodoViewModel, manager: DataManager, monkeypatch
) -> None:
    task_id = view_model.add_task("contended", priority=1)
    original_save = manager.save
    contenders: list[threading.Thread] = []
    blocked: list[bool] = []

    def _save_while_contended() -> None:
        other = threading.Thread(target=manager.perform, args=(lambda session: None,))
        other.start()
        other.join(timeout=0.2)
        contenders.append(other)
        blocked.append(other.is_alive())
        original_save()

    monkeypatch.setattr(manager, "save", _save_while_contended)

    view_model.toggle_completion(_find(view_model, task_id))

    assert blocked == [True]
    contenders[0].join(timeout=5)
    assert not contenders[0].is_alive()
    assert _find(view_model, task_id).is_completed is True
