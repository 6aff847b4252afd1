"""
Format codecs and the registry that picks one by file extension.

Modules:
- json_codec: JSON via the json module
- ini_codec: INI via configparser
- xml_codec: XML via lxml
- csv_codec: CSV via the csv module
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from ..errors import UnsupportedFormatError
from ..models import ConfigSyncSettings, Format
from .base import Codec
from .csv_codec import CsvCodec
from .ini_codec import IniCodec
from .json_codec import JsonCodec
from .xml_codec import XmlCodec

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: Dict[str, Format] = {
    ".json": Format.JSON,
    ".ini": Format.INI,
    ".xml": Format.XML,
    ".csv": Format.CSV,
}


def detect_format(path: Union[str, Path], extensions: Optional[Dict[str, Format]] = None) -> Format:
    """
    Map a file path to its format by extension (case-insensitive).

    Raises:
        UnsupportedFormatError: If the extension is not recognized
    """
    extensions = DEFAULT_EXTENSIONS if extensions is None else extensions
    suffix = Path(path).suffix.lower()
    try:
        return extensions[suffix]
    except KeyError:
        raise UnsupportedFormatError(str(path), suffix) from None


class CodecRegistry:
    """Codecs keyed by format, plus the extension table used to detect formats."""

    def __init__(self, settings: Optional[ConfigSyncSettings] = None):
        self.settings = settings or ConfigSyncSettings()
        self._codecs: Dict[Format, Codec] = {}
        self._extensions: Dict[str, Format] = {}

        for codec_class in (JsonCodec, IniCodec, XmlCodec, CsvCodec):
            self.register(codec_class(self.settings))

    def register(self, codec: Codec, extensions: Optional[Iterable[str]] = None) -> None:
        """
        Register a codec for its format.

        Args:
            codec: Codec instance; replaces any codec already registered for its format
            extensions: File extensions mapped to the codec's format
                (defaults to ``.<format>``)
        """
        if codec.format in self._codecs:
            logger.debug(f"Replacing codec for {codec.format.value}")
        self._codecs[codec.format] = codec
        for extension in extensions or [f".{codec.format.value}"]:
            self._extensions[extension.lower()] = codec.format

    def detect(self, path: Union[str, Path]) -> Format:
        return detect_format(path, self._extensions)

    def get(self, format: Format) -> Codec:
        try:
            return self._codecs[format]
        except KeyError:
            raise UnsupportedFormatError(f"<{format.value}>", f".{format.value}") from None

    def for_path(self, path: Union[str, Path]) -> Codec:
        return self.get(self.detect(path))

    @property
    def formats(self) -> list:
        return list(self._codecs)


__all__ = [
    "Codec",
    "CodecRegistry",
    "CsvCodec",
    "DEFAULT_EXTENSIONS",
    "IniCodec",
    "JsonCodec",
    "XmlCodec",
    "detect_format",
]
