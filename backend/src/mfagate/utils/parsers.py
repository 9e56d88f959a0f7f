"""Shared parsing utilities for configuration maps and form fields."""

from __future__ import annotations

from typing import Any
from typing import Mapping
from typing import Optional


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer from a string.

    Args:
        value: The string value to parse, or None.

    Returns:
        The parsed integer, or None if input is None or empty.

    Raises:
        ValueError: If the string cannot be converted to an integer.
    """
    if value is None or value == "":
        return None
    return int(value)


def parse_bool(value: Optional[str]) -> bool:
    """Parse a ``"true"``/``"false"`` flag.

    Only the literal ``true`` (any case, surrounding whitespace ignored)
    counts as set; anything else, including None, is False.
    """
    if value is None:
        return False
    return str(value).strip().lower() == "true"


def parse_csv(value: Optional[str]) -> list[str]:
    """Split a comma-separated string, dropping blanks.

    Args:
        value: The comma-separated string, or None.

    Returns:
        Stripped, non-empty items in their original order.
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_int_list(
    value: str,
    fallback: int,
) -> list[int]:
    """Parse a comma-separated list of positive integers.

    Each entry that is not a positive integer is replaced with
    ``fallback`` rather than rejected, so the result always has one
    element per comma-separated entry.

    Args:
        value: The comma-separated string.
        fallback: Value substituted for each malformed entry.

    Returns:
        The parsed integers.
    """
    result: list[int] = []
    for item in value.split(","):
        try:
            parsed = int(item.strip())
        except ValueError:
            parsed = fallback
        result.append(parsed if parsed > 0 else fallback)
    return result


def first_value(values: Any) -> Optional[str]:
    """Return the first value of a form field.

    Form decoders hand back either a plain string or a list of strings
    for repeated fields.
    """
    if values is None:
        return None
    if isinstance(values, (list, tuple)):
        return str(values[0]) if values else None
    return str(values)


def get_header(
    headers: Optional[Mapping[str, Any]],
    name: str,
) -> Optional[str]:
    """Look up an HTTP header case-insensitively.

    Args:
        headers: Header map, possibly None.
        name: Header name.

    Returns:
        The first header value, or None when absent.
    """
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return first_value(value)
    return None


def parse_groups(value: Any) -> list[str]:
    """Parse a group claim that may be a CSV string or a list.

    Cognito User Pool authorizers hand groups over as a comma-separated
    string; Lambda authorizers may pass a list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(item).strip() for item in value if str(item).strip()]
    return parse_csv(str(value))
