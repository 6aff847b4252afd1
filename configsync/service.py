"""
Configuration service: one store plus its watch manager.

Collaborators construct a ConfigService at their composition root and pass it
by reference; there is no module-level instance.
"""

from pathlib import Path
from typing import Any, Callable, Optional

from .codecs import CodecRegistry
from .file_watcher import Listener, WatchEntry, WatchManager
from .models import ConfigSyncSettings
from .store import ConfigStore, PathLike


class ConfigService:
    """Load, query, mutate, save and watch a configuration document."""

    def __init__(self, settings: Optional[ConfigSyncSettings] = None, **watch_options: Any):
        """
        Initialize configuration service.

        Args:
            settings: Runtime settings (defaults to ConfigSyncSettings())
            **watch_options: Extra keyword arguments for WatchManager
        """
        self.settings = settings or ConfigSyncSettings()
        self.codecs = CodecRegistry(self.settings)
        self.store = ConfigStore(self.codecs)
        self.watcher = WatchManager(self.store, self.settings, **watch_options)

    async def load_config(self, path: PathLike) -> None:
        await self.store.load(path)

    def get_config(self, path: Optional[str] = None, default: Any = None) -> Any:
        return self.store.get(path, default)

    def set_config(self, path: str, value: Any) -> None:
        self.store.set(path, value)

    async def save_config(self, path: Optional[PathLike] = None) -> Path:
        return await self.store.save(path)

    def watch_config(self, path: PathLike, callback: Optional[Listener] = None) -> WatchEntry:
        return self.watcher.watch(path, callback)

    def unwatch_config(self, path: PathLike) -> None:
        self.watcher.unwatch(path)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.watcher.subscribe(listener)

    def close(self) -> None:
        """Stop every watch."""
        self.watcher.close()

    async def __aenter__(self) -> "ConfigService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
