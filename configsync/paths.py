"""
Path expressions for addressing nodes inside a document.

A path is a sequence of dotted keys and bracketed indices, freely mixed:
``server.port``, ``users[0].name``, ``arr.0.name``, ``[2]``. A dotted
segment made only of digits is a DigitKey: an index into a list, but the
literal key (leading zeros kept) when it meets a mapping.
"""

import re
from functools import lru_cache
from typing import Any, Optional, Tuple, Union

from .errors import PathError

Segment = Union[str, int]

_IDENT = r"[^.\[\]]+"
_INDEX = r"\[[0-9]+\]"
_GRAMMAR = re.compile(rf"(?:{_IDENT}|{_INDEX})(?:\.{_IDENT}|{_INDEX})*")
_TOKEN = re.compile(r"([^.\[\]]+)|\[([0-9]+)\]")
_DIGITS = re.compile(r"[0-9]+")

# Writes past this index are rejected instead of padding the list.
MAX_INDEX = 100_000


class _Absent:
    """Marker for a path that does not resolve to any node."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


class DigitKey(int):
    """Index written as a dotted key (``arr.0``) that remembers its source text."""

    text: str

    def __new__(cls, text: str):
        key = super().__new__(cls, text)
        key.text = text
        return key


def parse(path: Optional[str]) -> Tuple[Segment, ...]:
    """
    Parse a path expression into segments.

    Args:
        path: Expression such as ``a.b[0].c``; empty or None means the whole document

    Returns:
        Tuple of string keys, integer indices and DigitKeys

    Raises:
        PathError: If the expression is malformed
    """
    if not path:
        return ()
    return _parse(path)


@lru_cache(maxsize=512)
def _parse(path: str) -> Tuple[Segment, ...]:
    if not _GRAMMAR.fullmatch(path):
        raise PathError(path, _diagnose(path))

    segments = []
    for match in _TOKEN.finditer(path):
        key, index = match.groups()
        if index is not None:
            segments.append(int(index))
        elif _DIGITS.fullmatch(key):
            segments.append(DigitKey(key))
        else:
            segments.append(key)
    return tuple(segments)


def _diagnose(path: str) -> str:
    """Explain why a path failed to match the grammar."""
    depth = 0
    for position, ch in enumerate(path):
        if ch == "[":
            if depth:
                return f"nested '[' at position {position}"
            depth = 1
        elif ch == "]":
            if not depth:
                return f"unmatched ']' at position {position}"
            depth = 0
    if depth:
        return "unmatched '['"
    if path.startswith(".") or path.endswith(".") or ".." in path or ".[" in path:
        return "empty key"
    for match in re.finditer(r"\[([^\]]*)\]", path):
        if not _DIGITS.fullmatch(match.group(1)):
            return f"index must be a non-negative integer, got {match.group(1)!r}"
    return "key must follow '.' after a closing bracket"


def accepts(node: Any, segment: Segment) -> bool:
    """Whether ``node`` is the container kind ``segment`` navigates into."""
    if isinstance(segment, DigitKey):
        return isinstance(node, (list, dict))
    if isinstance(segment, int):
        return isinstance(node, list)
    return isinstance(node, dict)


def new_container(segment: Segment) -> Any:
    """Create the empty container ``segment`` navigates into."""
    return [] if isinstance(segment, int) else {}


def resolve(document: Any, segments: Tuple[Segment, ...]) -> Any:
    """
    Walk ``segments`` from ``document``.

    Returns:
        The addressed node, or ABSENT as soon as a segment cannot be resolved
    """
    node = document
    for segment in segments:
        if isinstance(node, dict):
            key = _key(segment)
            if key not in node:
                return ABSENT
            node = node[key]
        elif isinstance(node, list) and isinstance(segment, int):
            if segment >= len(node):
                return ABSENT
            node = node[segment]
        else:
            return ABSENT
    return node


def assign(document: Any, segments: Tuple[Segment, ...], value: Any) -> None:
    """
    Set the node addressed by ``segments`` to ``value``, creating containers on the way.

    Each intermediate node is replaced when it is not the container kind the
    next segment needs; whatever it held is discarded. Lists are padded with
    None when an index lies past their end. A DigitKey that meets a mapping
    writes its literal text as the key, so the mapping and its other keys stay.

    Raises:
        PathError: If ``document`` itself is the wrong container for the first
            segment, or a list index exceeds MAX_INDEX
    """
    if not segments:
        return

    if not accepts(document, segments[0]):
        raise PathError(
            format_path(segments),
            f"document root is a {type(document).__name__}, cannot descend into it"
        )

    _check_indices(document, segments)

    node = document
    for segment, next_segment in zip(segments, segments[1:]):
        child = _child(node, segment)
        if not accepts(child, next_segment):
            child = new_container(next_segment)
            _put(node, segment, child)
        node = child

    _put(node, segments[-1], value)


def format_path(segments: Tuple[Segment, ...]) -> str:
    """Render segments back into the canonical ``a.b[0]`` form."""
    parts = []
    for segment in segments:
        if isinstance(segment, DigitKey):
            parts.append(f".{segment.text}" if parts else segment.text)
        elif isinstance(segment, int):
            parts.append(f"[{segment}]")
        else:
            parts.append(f".{segment}" if parts else segment)
    return "".join(parts)


def _key(segment: Segment) -> str:
    """Mapping key addressed by ``segment``; indices fall back to their digits."""
    if isinstance(segment, DigitKey):
        return segment.text
    if isinstance(segment, int):
        return str(segment)
    return segment


def _check_indices(document: Any, segments: Tuple[Segment, ...]) -> None:
    """Dry-run the walk of ``assign`` so an oversized index fails before any write."""
    node = document
    for position, segment in enumerate(segments):
        if isinstance(node, list) and isinstance(segment, int) and segment > MAX_INDEX:
            raise PathError(
                format_path(segments),
                f"index {int(segment)} exceeds the maximum of {MAX_INDEX}"
            )
        if position + 1 == len(segments):
            return
        child = _child(node, segment)
        next_segment = segments[position + 1]
        node = child if accepts(child, next_segment) else new_container(next_segment)


def _child(node: Any, segment: Segment) -> Any:
    if isinstance(node, dict):
        return node.get(_key(segment), ABSENT)
    if segment < len(node):
        return node[segment]
    return ABSENT


def _put(node: Any, segment: Segment, value: Any) -> None:
    if isinstance(node, dict):
        node[_key(segment)] = value
        return
    if segment >= len(node):
        node.extend([None] * (segment - len(node) + 1))
    node[segment] = value
