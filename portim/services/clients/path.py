"""Path expressions locating the client identifier inside inbound payloads.

An expression looks like ``$.user.id`` or ``$.entries.0.sender.id``: a root
marker followed by dot-separated segments. A segment is either a field name
(``[A-Za-z_][A-Za-z0-9_]*``) or a non-negative integer index. Expressions
are parsed once into a tuple of accessors and evaluated against decoded
JSON (dicts, lists and scalars).
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from portim.core.exceptions import InvalidPathError

_MISSING = object()

_PATH_PATTERN = re.compile(r"^\$(\.([A-Za-z_][A-Za-z0-9_]*|[0-9]+))*$")


@dataclass(frozen=True)
class FieldAccessor:
    name: str

    def access(self, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get(self.name, _MISSING)
        return _MISSING


@dataclass(frozen=True)
class IndexAccessor:
    index: int

    def access(self, value: Any) -> Any:
        if isinstance(value, list):
            if self.index < len(value):
                return value[self.index]
            return _MISSING
        # JSON object keys are strings, so "$.a.0" also reaches {"a": {"0": ...}}
        if isinstance(value, dict):
            return value.get(str(self.index), _MISSING)
        return _MISSING


Accessor = FieldAccessor | IndexAccessor


@dataclass(frozen=True)
class PathExpression:
    """A parsed path expression."""

    source: str
    accessors: tuple[Accessor, ...]

    def evaluate(self, payload: Any) -> Any:
        """Walk ``payload``; returns None when any step is absent or null."""
        current = payload
        for accessor in self.accessors:
            if current is None:
                return None
            current = accessor.access(current)
            if current is _MISSING:
                return None
        return current

    def __str__(self) -> str:
        return self.source


@lru_cache(maxsize=256)
def parse_path(expression: str) -> PathExpression:
    """Parse a path expression.

    Raises:
        InvalidPathError: if the expression does not match the grammar
    """
    if not isinstance(expression, str) or not _PATH_PATTERN.fullmatch(expression):
        raise InvalidPathError(str(expression))

    accessors: list[Accessor] = []
    for segment in expression.split(".")[1:]:
        if segment.isdigit():
            accessors.append(IndexAccessor(int(segment)))
        else:
            accessors.append(FieldAccessor(segment))

    return PathExpression(source=expression, accessors=tuple(accessors))


def is_valid_path(expression: str) -> bool:
    try:
        parse_path(expression)
    except InvalidPathError:
        return False
    return True


def resolve_path(payload: Any, expression: str) -> str | None:
    """Extract an identifier from ``payload``.

    Only non-empty strings and numbers count as identifiers; anything else
    (missing keys, null, booleans, objects, arrays) is "not found".

    Raises:
        InvalidPathError: if the expression is malformed
    """
    value = parse_path(expression).evaluate(payload)

    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return None
