"""Utility functions for reading loosely-typed server payloads."""

from typing import Any, List, Mapping, Optional

from absl import logging


def lookup(raw: Any, *keys: str) -> Any:
    """Return the first value found under any of the keys.

    Keys are tried in order and a key whose value is None counts as absent,
    so callers list the preferred (snake_case) spelling first and the
    legacy (PascalCase) spelling after it.

    Args:
        raw: Mapping to read from. Non-mappings are treated as empty.
        *keys: Candidate keys in order of preference

    Returns:
        The first non-None value, or None if no key matched

    Examples:
        >>> lookup({"hp_max": 50, "HPMax": 40}, "hp_max", "HPMax")
        50
        >>> lookup({"HPMax": 40}, "hp_max", "HPMax")
        40
    """
    if not isinstance(raw, Mapping):
        return None
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def lookup_path(raw: Any, *path: str) -> Any:
    """Follow a nested key path (e.g., "Player", "Deck"), None if any hop is missing."""
    current = raw
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def as_mapping(value: Any) -> Mapping[str, Any]:
    """Return the value if it is a mapping, otherwise an empty dict."""
    return value if isinstance(value, Mapping) else {}


def _is_integer_string(value: str) -> bool:
    digits = value.strip()
    if digits.startswith("-"):
        digits = digits[1:]
    return digits.isascii() and digits.isdigit()


def coerce_int(
    value: Any, default: int, field_name: str, minimum: Optional[int] = None
) -> int:
    """Convert a payload value to int, falling back to a default.

    A missing value is logged at debug level. A value that is present but
    cannot be read as an integer is logged as a warning since it points at
    a server contract change.

    Args:
        value: Raw value (int, integral float, numeric string or None)
        default: Value used when the input is missing or malformed
        field_name: Field name used in log messages
        minimum: Optional lower bound applied after conversion

    Returns:
        Converted integer
    """
    result: int
    if value is None:
        logging.debug("Field %s missing, defaulting to %r", field_name, default)
        result = default
    elif isinstance(value, bool):
        logging.warning("Field %s has boolean value %r, expected int", field_name, value)
        result = default
    elif isinstance(value, int):
        result = value
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    elif isinstance(value, str) and _is_integer_string(value):
        result = int(value.strip())
    else:
        logging.warning(
            "Field %s has malformed value %r, defaulting to %r",
            field_name,
            value,
            default,
        )
        result = default

    if minimum is not None and result < minimum:
        logging.warning(
            "Field %s value %d below minimum %d, clamping", field_name, result, minimum
        )
        result = minimum
    return result


def coerce_bool(value: Any, default: bool, field_name: str) -> bool:
    """Convert a payload value to bool, falling back to a default."""
    if value is None:
        logging.debug("Field %s missing, defaulting to %r", field_name, default)
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    logging.warning(
        "Field %s has malformed value %r, defaulting to %r", field_name, value, default
    )
    return default


def coerce_str(value: Any, default: str, field_name: str) -> str:
    """Convert a payload value to str, falling back to a default."""
    if value is None:
        logging.debug("Field %s missing, defaulting to %r", field_name, default)
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    logging.warning(
        "Field %s has malformed value %r, defaulting to %r", field_name, value, default
    )
    return default


def coerce_list(value: Any, field_name: str) -> List[Any]:
    """Convert a payload value to a list, empty if missing or malformed."""
    if value is None:
        logging.debug("Field %s missing, defaulting to []", field_name)
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    logging.warning("Field %s has malformed value %r, defaulting to []", field_name, value)
    return []
