"""
Data models for configsync.

Defines the format enumeration, runtime settings and the notification events
published by the watch manager.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Enumerations

class Format(str, Enum):
    """On-disk document format."""
    JSON = "json"
    INI = "ini"
    XML = "xml"
    CSV = "csv"


class WatchState(str, Enum):
    """Lifecycle state of a single watch entry."""
    IDLE = "idle"
    PENDING = "pending"
    RELOADING = "reloading"


# Settings

class ConfigSyncSettings(BaseSettings):
    """
    Runtime settings shared by the codecs and the watch manager.

    Every field can be set from a CONFIGSYNC_-prefixed environment variable,
    e.g. CONFIGSYNC_DEBOUNCE_MS=300.
    """

    model_config = SettingsConfigDict(env_prefix="CONFIGSYNC_")

    debounce_ms: int = Field(150, gt=0, description="Quiet period before a watched file is reloaded")
    json_indent: int = Field(2, ge=0, description="Indentation used when writing JSON")
    xml_attribute_prefix: str = Field("@_", description="Key prefix marking XML attributes")
    xml_text_key: str = Field("#text", description="Key holding element text next to attributes or children")
    csv_key_header: str = Field("key", description="Header of the key column in key/value CSV files")
    csv_value_header: str = Field("value", description="Header of the value column in key/value CSV files")
    observer_join_timeout: float = Field(5.0, gt=0, description="Seconds to wait for a watchdog observer to stop")

    @field_validator('xml_attribute_prefix', 'xml_text_key', 'csv_key_header', 'csv_value_header')
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Markers and headers must be non-empty."""
        if not v:
            raise ValueError("Value cannot be empty")
        return v

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


# Notification events

@dataclass(frozen=True)
class ConfigChanged:
    """A watched file was reloaded successfully."""
    path: Path
    document: Any


@dataclass(frozen=True)
class ConfigReloadFailed:
    """A watched file changed but could not be reloaded; the previous document is kept."""
    path: Path
    error: Exception
