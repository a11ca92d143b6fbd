from __future__ import annotations

from enum import IntEnum


class PriorityLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2


def priority_bucket(priority: int) -> PriorityLevel:
    if priority >= PriorityLevel.HIGH:
        return PriorityLevel.HIGH
    if priority == PriorityLevel.MEDIUM:
        return PriorityLevel.MEDIUM
    return PriorityLevel.LOW
