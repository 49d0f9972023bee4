"""Scalar, sequence and range extraction from parsed YAML nodes."""

from __future__ import annotations

from typing import Any

from .models import ErrorKind, PSPConversionError, Range

CONVERT_PREFIX = "Could not convert value from PSP Yaml Document: "


def conversion_error(path: str, expected: str, value: Any) -> PSPConversionError:
    if value is None:
        detail = f"{path} is missing or null (expected {expected})"
    else:
        detail = f"{path} is {type(value).__name__} {value!r} (expected {expected})"
    return PSPConversionError(CONVERT_PREFIX + detail, ErrorKind.type_conversion)


def as_str(value: Any, path: str) -> str:
    """Coerce a YAML scalar to its string form.

    Booleans use their YAML spelling and numbers their decimal text.
    Null, mappings and sequences are rejected.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (dict, list)):
        raise conversion_error(path, "a scalar", value)
    return str(value)


_TRUE_WORDS = {"y", "yes", "true", "on"}
_FALSE_WORDS = {"n", "no", "false", "off"}


def as_bool(value: Any, path: str) -> bool:
    """Coerce a YAML boolean, also accepting quoted spellings like ``"false"``."""
    if isinstance(value, bool):
        return value
    # yes, Yes and YES are accepted; mixed case like yEs is not.
    if isinstance(value, str) and value in (value.lower(), value.capitalize(), value.upper()):
        word = value.lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise conversion_error(path, "a boolean", value)


def as_list(node: Any, path: str) -> list[Any]:
    """Return *node* as a list; a null node counts as an empty sequence."""
    if node is None:
        return []
    if not isinstance(node, list):
        raise conversion_error(path, "a sequence", node)
    return node


def as_mapping(node: Any, path: str) -> dict[str, Any]:
    if not isinstance(node, dict):
        raise conversion_error(path, "a mapping", node)
    return node


def _iter_ranges(node: Any, path: str) -> list[Range]:
    ranges: list[Range] = []
    for i, entry in enumerate(as_list(node, path)):
        item_path = f"{path}[{i}]"
        entry = as_mapping(entry, item_path)
        ranges.append(
            Range(
                min=as_str(entry.get("min"), f"{item_path}.min"),
                max=as_str(entry.get("max"), f"{item_path}.max"),
            )
        )
    return ranges


def parse_ranges(node: Any, create_objects: bool = False, path: str = "ranges") -> list[Any]:
    """Convert a sequence of ``{min, max}`` entries, keeping document order.

    Returns ``"min:max"`` strings, or :class:`Range` objects when
    *create_objects* is true.  Bounds are not checked against each other.
    """
    ranges = _iter_ranges(node, path)
    if create_objects:
        return ranges
    return [r.joined() for r in ranges]


def parse_sequence(node: Any, path: str = "items") -> list[str]:
    """Convert a sequence of scalars to strings, keeping document order."""
    return [as_str(item, f"{path}[{i}]") for i, item in enumerate(as_list(node, path))]


def parse_field_sequence(node: Any, key: str, path: str) -> list[str]:
    """Pull ``key`` out of each mapping in a sequence (e.g. ``pathPrefix``)."""
    values: list[str] = []
    for i, entry in enumerate(as_list(node, path)):
        item_path = f"{path}[{i}]"
        values.append(as_str(as_mapping(entry, item_path).get(key), f"{item_path}.{key}"))
    return values
