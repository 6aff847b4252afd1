"""
Codec base class and helpers shared by the format implementations.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..errors import ParseError
from ..models import ConfigSyncSettings, Format


class Codec(ABC):
    """Decodes raw file bytes into a document and encodes it back."""

    format: Format

    def __init__(self, settings: ConfigSyncSettings):
        self.settings = settings

    @abstractmethod
    def decode(self, raw: bytes) -> Any:
        """
        Decode raw file contents.

        Raises:
            ParseError: If the content violates the format's syntax
        """

    @abstractmethod
    def encode(self, document: Any) -> bytes:
        """
        Encode a document as file contents.

        Raises:
            SaveError: If the document's shape cannot be expressed in this format
        """

    def _text(self, raw: bytes) -> str:
        """Decode UTF-8 bytes, tolerating a byte order mark."""
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(self.format.value, f"not valid UTF-8 ({e.reason} at byte {e.start})") from e


def is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def scalar_text(value: Any) -> str:
    """Render a scalar the way text-only formats store it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
