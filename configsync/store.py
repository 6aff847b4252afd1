"""
In-memory configuration document with load/get/set/save.

The store owns exactly one document. Loading replaces it wholesale in a single
assignment once the new content has been read and decoded, so readers always
see either the old document or the new one in full.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Optional, Union

from . import paths
from .codecs import CodecRegistry
from .errors import ConfigFileNotFoundError, ParseError, ReadError, SaveError
from .models import Format

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def canonical_path(path: PathLike) -> Path:
    """Absolute, normalized form of ``path`` used as identity for files."""
    return Path(path).expanduser().resolve()


class ConfigStore:
    """Owns the live document and its backing file."""

    def __init__(self, codecs: Optional[CodecRegistry] = None):
        """
        Initialize an empty store.

        Args:
            codecs: Codec registry; defaults to one built with default settings
        """
        self.codecs = codecs or CodecRegistry()
        self._document: Any = {}
        self._path: Optional[Path] = None
        self._format: Optional[Format] = None

    @property
    def document(self) -> Any:
        return self._document

    @property
    def path(self) -> Optional[Path]:
        """File the document was last loaded from."""
        return self._path

    @property
    def format(self) -> Optional[Format]:
        return self._format

    async def load(self, path: PathLike) -> None:
        """
        Load ``path`` and make its content the current document.

        Args:
            path: File to read; its extension selects the codec

        Raises:
            UnsupportedFormatError: If the extension is not recognized
            ConfigFileNotFoundError: If the file does not exist
            ParseError: If the content is malformed
            ReadError: If the file exists but cannot be read
        """
        file_path = canonical_path(path)
        codec = self.codecs.for_path(file_path)

        if not file_path.is_file():
            raise ConfigFileNotFoundError(str(file_path))

        logger.debug(f"Reading {codec.format.value} config from {file_path}")
        try:
            raw = await asyncio.to_thread(file_path.read_bytes)
        except FileNotFoundError:
            raise ConfigFileNotFoundError(str(file_path)) from None
        except OSError as e:
            raise ReadError(e.strerror or str(e), str(file_path)) from e

        try:
            document = codec.decode(raw)
        except ParseError as e:
            raise e.with_file(str(file_path)) from e

        self._document, self._path, self._format = document, file_path, codec.format
        logger.info(f"Loaded configuration from {file_path} ({codec.format.value})")

    def get(self, path: Optional[str] = None, default: Any = None) -> Any:
        """
        Read the node at ``path``.

        Args:
            path: Path expression; empty or None returns the whole document
            default: Returned when the path does not resolve

        Raises:
            PathError: If the expression is malformed
        """
        segments = paths.parse(path)
        if not segments:
            return self._document
        value = paths.resolve(self._document, segments)
        return default if value is paths.ABSENT else value

    def set(self, path: Optional[str], value: Any) -> None:
        """
        Write ``value`` at ``path``, creating or replacing containers on the way.

        Empty paths are ignored.

        Raises:
            PathError: If the expression is malformed
        """
        segments = paths.parse(path)
        if not segments:
            return

        if not paths.accepts(self._document, segments[0]):
            logger.debug(
                f"Replacing {type(self._document).__name__} document root to set {path}"
            )
            self._document = paths.new_container(segments[0])

        paths.assign(self._document, segments, value)

    async def save(self, path: Optional[PathLike] = None) -> Path:
        """
        Write the current document to ``path`` or to the last loaded file.

        The target's extension picks the format, so loading one format and
        saving to another converts the file. The file is overwritten in place.

        Returns:
            The file that was written

        Raises:
            SaveError: If there is no target or the document cannot be encoded
            UnsupportedFormatError: If the target extension is not recognized
        """
        if path is not None:
            file_path = canonical_path(path)
        elif self._path is not None:
            file_path = self._path
        else:
            raise SaveError(
                "no config file path specified",
                suggestion="Load a file first or pass a target path"
            )

        codec = self.codecs.for_path(file_path)
        try:
            data = codec.encode(self._document)
        except SaveError as e:
            raise SaveError(e.context["reason"], file_path=str(file_path), suggestion=e.suggestion) from e

        try:
            await asyncio.to_thread(file_path.write_bytes, data)
        except OSError as e:
            raise SaveError(e.strerror or str(e), file_path=str(file_path)) from e

        logger.info(f"Saved configuration to {file_path} ({codec.format.value})")
        return file_path
