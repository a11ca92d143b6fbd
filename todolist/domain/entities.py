from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class TaskEntity:
    id: uuid.UUID
    title: str
    is_completed: bool
    created_date: Optional[datetime]
    due_date: Optional[datetime]
    priority: int


def due_date_sort_key(task: TaskEntity) -> tuple[bool, datetime]:
    """Ascending by due date; tasks without one go last."""
    return (task.due_date is None, task.due_date or datetime.min)
