from __future__ import annotations

from todolist.config import SETTINGS, Settings
from todolist.infra.db import Store
from todolist.services.manager import DataManager


class AppDependencies:
    """Everything the app needs to reach storage, built once and passed down."""

    def __init__(
        self,
        store: Store | None = None,
        manager: DataManager | None = None,
        settings: Settings = SETTINGS,
    ) -> None:
        self.settings = settings
        self.store = store or Store(settings.database_url)
        self.manager = manager or DataManager(self.store)

    def close(self) -> None:
        self.manager.close()
        self.store.close()
