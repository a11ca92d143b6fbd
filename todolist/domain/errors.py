from __future__ import annotations

from typing import Any


class TaskStoreError(Exception):
    """Base class for every storage failure surfaced to callers."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class StoreLoadError(TaskStoreError):
    def __init__(self, database_url: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Could not open store at {database_url}: {cause}", cause)
        self.database_url = database_url


class NotFound(TaskStoreError):
    def __init__(self, entity: str, id: Any) -> None:
        super().__init__(f"{entity} with id {id} not found")
        self.entity = entity
        self.id = id


class FetchFailed(TaskStoreError):
    def __init__(self, entity: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Fetching {entity} failed: {cause}", cause)
        self.entity = entity


class SaveFailed(TaskStoreError):
    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__(f"Saving changes failed: {cause}", cause)


class BatchUpdateFailed(TaskStoreError):
    def __init__(self, entity: str, cause: BaseException | None = None) -> None:
        super().__init__(f"Batch update of {entity} failed: {cause}", cause)
        self.entity = entity
