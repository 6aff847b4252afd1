"""JSON codec."""

import json
from typing import Any

from ..errors import ParseError, SaveError
from ..models import Format
from .base import Codec


class JsonCodec(Codec):
    """Direct structural (de)serialization through the json module."""

    format = Format.JSON

    def decode(self, raw: bytes) -> Any:
        text = self._text(raw)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(self.format.value, e.msg, line_number=e.lineno) from e

    def encode(self, document: Any) -> bytes:
        try:
            text = json.dumps(document, indent=self.settings.json_indent, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SaveError(f"document is not JSON serializable: {e}") from e
        return (text + "\n").encode("utf-8")
