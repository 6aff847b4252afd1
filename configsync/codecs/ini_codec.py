"""
INI codec.

Sections become top-level keys and every value stays a string. Keys that
appear before the first section header live at the top level of the document,
and dotted section names (``[server.tls]``) nest inside their parent section.
"""

import configparser
import io
import logging
from typing import Any, Dict

from ..errors import ParseError, SaveError
from ..models import Format
from .base import Codec, is_scalar, scalar_text

logger = logging.getLogger(__name__)

# Reserved section names; NUL never appears in the section headers
# of a real file.
_ROOT_SECTION = "\x00root"
_DEFAULT_SECTION = "\x00defaults"


class IniCodec(Codec):
    """INI files via configparser, strings only."""

    format = Format.INI

    def _parser(self) -> configparser.ConfigParser:
        parser = configparser.ConfigParser(
            interpolation=None,
            delimiters=("=",),
            default_section=_DEFAULT_SECTION,
            strict=False,
        )
        parser.optionxform = str
        return parser

    def decode(self, raw: bytes) -> Dict[str, Any]:
        text = self._text(raw)
        parser = self._parser()

        try:
            parser.read_string(f"[{_ROOT_SECTION}]\n{text}")
        except configparser.ParsingError as e:
            lineno, line = e.errors[0]
            raise ParseError(
                self.format.value,
                f"cannot parse line {lineno - 1}: {line}",
                line_number=lineno - 1
            ) from e
        except configparser.Error as e:
            raise ParseError(self.format.value, e.message) from e

        document: Dict[str, Any] = dict(parser.items(_ROOT_SECTION))
        for section in parser.sections():
            if section == _ROOT_SECTION:
                continue
            target = document
            for part in section.split("."):
                child = target.get(part)
                if not isinstance(child, dict):
                    child = {}
                    target[part] = child
                target = child
            target.update(parser.items(section))

        return document

    def encode(self, document: Any) -> bytes:
        if not isinstance(document, dict):
            raise SaveError(
                f"ini documents must be mappings at the top level, got {type(document).__name__}"
            )

        parser = self._parser()
        top_level = {k: v for k, v in document.items() if not isinstance(v, dict)}
        if top_level:
            parser.add_section(_ROOT_SECTION)
            for key, value in top_level.items():
                parser.set(_ROOT_SECTION, key, self._value(key, value))

        for key, value in document.items():
            if isinstance(value, dict):
                self._add_section(parser, key, value)

        buffer = io.StringIO()
        parser.write(buffer)
        text = buffer.getvalue()

        root_header = f"[{_ROOT_SECTION}]\n"
        if text.startswith(root_header):
            text = text[len(root_header):]

        return text.encode("utf-8")

    def _add_section(self, parser: configparser.ConfigParser, name: str, mapping: Dict[str, Any]) -> None:
        """Write one section, then its nested mappings as dotted sub-sections."""
        nested = {k: v for k, v in mapping.items() if isinstance(v, dict)}
        scalars = {k: v for k, v in mapping.items() if not isinstance(v, dict)}

        # A section holding only sub-sections is implied by their headers.
        if scalars or not nested:
            if parser.has_section(name):
                logger.warning(f"INI section [{name}] written twice; later values win")
            else:
                parser.add_section(name)
            for key, value in scalars.items():
                parser.set(name, key, self._value(f"{name}.{key}", value))

        for key, value in nested.items():
            self._add_section(parser, f"{name}.{key}", value)

    def _value(self, where: str, value: Any) -> str:
        if is_scalar(value):
            return scalar_text(value)
        if isinstance(value, list) and all(is_scalar(item) for item in value):
            logger.debug(f"Flattening list at {where} into a comma-separated INI value")
            return ",".join(scalar_text(item) for item in value)
        raise SaveError(f"cannot express {type(value).__name__} of containers at {where} in ini")
