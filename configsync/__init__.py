"""
configsync

Loads a configuration document from JSON, INI, XML or CSV, addresses it with
dotted/bracket paths, saves it back in any of those formats and keeps it in
sync with its file through debounced reloads.
"""

from .errors import (
    ConfigFileNotFoundError,
    ConfigSyncError,
    ErrorCode,
    ParseError,
    PathError,
    ReadError,
    SaveError,
    UnsupportedFormatError,
)
from .models import ConfigChanged, ConfigReloadFailed, ConfigSyncSettings, Format, WatchState
from .paths import ABSENT
from .service import ConfigService
from .store import ConfigStore
from .file_watcher import WatchManager

__version__ = "1.0.0"

__all__ = [
    "ABSENT",
    "ConfigChanged",
    "ConfigFileNotFoundError",
    "ConfigReloadFailed",
    "ConfigService",
    "ConfigStore",
    "ConfigSyncError",
    "ConfigSyncSettings",
    "ErrorCode",
    "Format",
    "ParseError",
    "PathError",
    "ReadError",
    "SaveError",
    "UnsupportedFormatError",
    "WatchManager",
    "WatchState",
]
