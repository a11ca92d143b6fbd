from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Literal

from .entities import TaskEntity

ChangeKind = Literal["inserted", "updated", "deleted"]


@dataclass(frozen=True)
class ChangeEvent:
    """Rows touched by one save: inserted, updated and deleted are disjoint."""

    inserted: frozenset[TaskEntity] = field(default_factory=frozenset)
    updated: frozenset[TaskEntity] = field(default_factory=frozenset)
    deleted: frozenset[TaskEntity] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not (self.inserted or self.updated or self.deleted)

    def ids(self, kind: ChangeKind) -> set[uuid.UUID]:
        return {task.id for task in getattr(self, kind)}
