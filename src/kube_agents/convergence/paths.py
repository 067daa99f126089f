"""Dotted field paths over nested resource documents."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

PATH_SEPARATOR = "."


class InvalidPathError(ValueError):
    """The path itself is unusable (empty)."""


class PathStructureError(LookupError):
    """A path segment was applied to a value that is not a mapping.

    This means the shape of the path and the shape of the document
    disagree, which no amount of waiting will fix.
    """

    def __init__(self, path: str, segment: str, found: Any) -> None:
        self.path = path
        self.segment = segment
        self.found_type = type(found).__name__
        super().__init__(
            f"path {path}: expected a mapping at {segment!r}, got {self.found_type}"
        )


@dataclass(frozen=True, slots=True)
class PathLookup:
    """Outcome of resolving a path: either a value or "not found"."""

    found: bool
    value: Any = None


NOT_FOUND = PathLookup(found=False)


def split_path(path: str) -> list[str]:
    trimmed = path[1:] if path.startswith(PATH_SEPARATOR) else path
    if not trimmed:
        msg = f"path {path!r}: must not be empty"
        raise InvalidPathError(msg)
    return trimmed.split(PATH_SEPARATOR)


def lookup_path(document: Mapping[str, Any], path: str) -> PathLookup:
    """Resolve ``path`` (e.g. ``.spec.replicas``) inside ``document``.

    An absent key anywhere along the way returns :data:`NOT_FOUND`.
    Descending into a non-mapping raises :class:`PathStructureError`.
    """

    current: Any = document
    for segment in split_path(path):
        if not isinstance(current, Mapping):
            raise PathStructureError(path, segment, current)
        if segment not in current:
            return NOT_FOUND
        current = current[segment]
    return PathLookup(found=True, value=current)


def as_number(value: Any) -> float | None:
    """Return ``value`` as a float when it is an int or float (never a bool)."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def string_form(value: Any) -> str:
    """Canonical text used when one side of a comparison is not numeric.

    Booleans render as ``true``/``false`` and integral numbers drop their
    fractional part, so a document value ``"3"`` matches expected ``3`` and
    ``3.0`` alike.
    """

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if value is None:
        return "null"
    return str(value)


def values_equal(actual: Any, expected: Any) -> bool:
    actual_number = as_number(actual)
    expected_number = as_number(expected)
    if actual_number is not None and expected_number is not None:
        return actual_number == expected_number
    return string_form(actual) == string_form(expected)
