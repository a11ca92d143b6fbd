from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid

from todolist.domain.entities import TaskEntity

from .db import Base


def local_now() -> datetime:
    return datetime.now()


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    created_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)
    priority = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TaskModel {self.id} {self.title!r}>"


def to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        title=model.title,
        is_completed=bool(model.is_completed),
        created_date=model.created_date,
        due_date=model.due_date,
        priority=model.priority if model.priority is not None else 0,
    )
