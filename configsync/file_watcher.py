"""
File watcher for configuration files.

Monitors watched files for changes and reloads them into a ConfigStore after
a debounce period, so that editor save sequences (write + rename) trigger a
single reload.
"""

import asyncio
import inspect
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import ConfigFileNotFoundError
from .models import ConfigChanged, ConfigReloadFailed, ConfigSyncSettings, WatchState
from .store import ConfigStore, PathLike, canonical_path

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]


class ConfigFileHandler(FileSystemEventHandler):
    """Forwards events for one file from the watchdog thread to the event loop."""

    def __init__(self, target: Path, notify: Callable[[], None], loop: asyncio.AbstractEventLoop):
        """
        Initialize file handler.

        Args:
            target: Canonical path of the watched file
            notify: Called on the event loop for every relevant event
            loop: Event loop that owns the watch entry
        """
        super().__init__()
        self.target = target
        self.notify = notify
        self.loop = loop

    def _should_trigger(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", None)]
        return any(p and Path(p) == self.target for p in paths)

    def _dispatch(self, event: FileSystemEvent) -> None:
        if not self._should_trigger(event):
            return

        logger.debug(f"File {event.event_type}: {self.target}")
        try:
            self.loop.call_soon_threadsafe(self.notify)
        except RuntimeError:
            logger.debug(f"Event loop closed, dropping {event.event_type} event for {self.target}")

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch(event)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        """Atomic saves write a temp file and rename it over the target."""
        self._dispatch(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._dispatch(event)


class WatchEntry:
    """
    Debounce state for one watched file.

    Idle -> Pending on a notification; every further notification restarts
    the timer. When the timer fires the entry goes to Reloading, then back to
    Idle (or Pending, if notifications arrived meanwhile).
    """

    def __init__(
        self,
        path: Path,
        callback: Optional[Listener],
        reload: Callable[["WatchEntry"], Any],
        debounce_seconds: float,
        loop: asyncio.AbstractEventLoop
    ):
        self.path = path
        self.callback = callback
        self.debounce_seconds = debounce_seconds
        self.loop = loop
        self.state = WatchState.IDLE
        self.observer: Optional[Observer] = None
        self.handler: Optional[ConfigFileHandler] = None
        self.reload_count = 0
        self._reload = reload
        self._timer: Optional[asyncio.TimerHandle] = None
        self._reload_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def notify(self) -> None:
        """Record a change notification and (re)arm the debounce timer."""
        if self._closed:
            return

        if self._timer is not None:
            self._timer.cancel()
            logger.debug(f"Debounce reset for {self.path}")

        self._timer = self.loop.call_later(self.debounce_seconds, self._fire)
        if self.state is WatchState.IDLE:
            self.state = WatchState.PENDING

    def _fire(self) -> None:
        self._timer = None
        self.state = WatchState.RELOADING
        self._reload_task = self.loop.create_task(self._run(self._reload_task))

    async def _run(self, previous: Optional[asyncio.Task]) -> None:
        # Reloads of one file never overlap.
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        try:
            self.reload_count += 1
            await self._reload(self)
        finally:
            if self._timer is not None:
                self.state = WatchState.PENDING
            elif self._reload_task is asyncio.current_task():
                self.state = WatchState.IDLE

    async def wait_idle(self) -> None:
        """Wait for the reload in flight, if any, to finish."""
        if self._reload_task is not None:
            await asyncio.wait([self._reload_task])

    def close(self, join_timeout: float) -> None:
        """Cancel the pending reload and release the watchdog observer."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.debug(f"Cancelled pending reload for {self.path}")

        if self.observer is not None:
            self.observer.stop()
            self.observer.join(timeout=join_timeout)
            self.observer = None

        if self.state is WatchState.PENDING:
            self.state = WatchState.IDLE


class WatchManager:
    """Keeps one watch entry per canonical file path and reloads on change."""

    def __init__(
        self,
        store: ConfigStore,
        settings: Optional[ConfigSyncSettings] = None,
        observer_factory: Callable[[], Observer] = Observer
    ):
        """
        Initialize watch manager.

        Args:
            store: Store that watched files are reloaded into
            settings: Debounce and shutdown settings
            observer_factory: Builds the watchdog observer for each entry
        """
        self.store = store
        self.settings = settings or ConfigSyncSettings()
        self.observer_factory = observer_factory
        self._entries: Dict[Path, WatchEntry] = {}
        self._listeners: List[Listener] = []

    def watch(self, path: PathLike, callback: Optional[Listener] = None) -> WatchEntry:
        """
        Start watching ``path``; a no-op if it is already watched.

        Must be called from the event loop that will run the reloads.

        Args:
            path: File to watch
            callback: Called with the new document after each successful reload

        Returns:
            The (new or existing) watch entry

        Raises:
            UnsupportedFormatError: If the extension is not recognized
            ConfigFileNotFoundError: If the file does not exist
        """
        file_path = canonical_path(path)
        existing = self._entries.get(file_path)
        if existing is not None:
            logger.debug(f"Already watching {file_path}")
            return existing

        self.store.codecs.detect(file_path)
        if not file_path.is_file():
            raise ConfigFileNotFoundError(str(file_path))

        loop = asyncio.get_running_loop()
        entry = WatchEntry(
            path=file_path,
            callback=callback,
            reload=self._reload,
            debounce_seconds=self.settings.debounce_seconds,
            loop=loop
        )
        entry.handler = ConfigFileHandler(file_path, entry.notify, loop)

        # Watch the directory: atomic saves replace the file's inode.
        observer = self.observer_factory()
        observer.schedule(entry.handler, str(file_path.parent), recursive=False)
        observer.start()
        entry.observer = observer

        self._entries[file_path] = entry
        logger.info(f"Started watching {file_path}")
        return entry

    def unwatch(self, path: PathLike) -> None:
        """Stop watching ``path``; unknown paths are ignored."""
        file_path = canonical_path(path)
        entry = self._entries.pop(file_path, None)
        if entry is None:
            return

        entry.close(self.settings.observer_join_timeout)
        logger.info(f"Stopped watching {file_path}")

    def close(self) -> None:
        for file_path in list(self._entries):
            self.unwatch(file_path)

    def notify(self, path: PathLike) -> bool:
        """
        Feed a change notification for ``path`` from an external source.

        Returns:
            True if the path is watched
        """
        entry = self._entries.get(canonical_path(path))
        if entry is None:
            return False
        entry.notify()
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Receive ConfigChanged and ConfigReloadFailed events for every watched file.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def entry(self, path: PathLike) -> Optional[WatchEntry]:
        return self._entries.get(canonical_path(path))

    def state(self, path: PathLike) -> Optional[WatchState]:
        entry = self.entry(path)
        return entry.state if entry else None

    def watched_paths(self) -> List[Path]:
        return list(self._entries)

    async def _reload(self, entry: WatchEntry) -> None:
        logger.info(f"Reloading {entry.path}")
        try:
            await self.store.load(entry.path)
        except Exception as e:
            logger.error(f"Error reloading config ({entry.path}): {e}")
            await self._publish(ConfigReloadFailed(path=entry.path, error=e))
            return

        document = self.store.document
        if entry.callback is not None:
            await self._call(entry.callback, document)
        await self._publish(ConfigChanged(path=entry.path, document=document))

    async def _publish(self, event: Any) -> None:
        for listener in list(self._listeners):
            await self._call(listener, event)

    async def _call(self, listener: Listener, argument: Any) -> None:
        try:
            result = listener(argument)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Config listener {listener!r} failed")
