"""Shared parsing helpers for configuration values and rule attributes."""

from __future__ import annotations


_TRUE_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_TOKENS = frozenset({"0", "false", "no", "off"})


def normalize_optional_string(value: object) -> str | None:
    """Return `value` as a stripped string, or `None` when it is missing or blank."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_flag_token(value: object) -> bool | None:
    """Interpret `value` as an on/off flag, returning `None` when it is not one.

    Accepts real booleans and the tokens `true/false`, `1/0`, `yes/no`, `on/off`
    in any letter case.
    """

    if isinstance(value, bool):
        return value
    token = normalize_optional_string(value)
    if token is None:
        return None
    token = token.lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    return None


def parse_flag(value: object, field_name: str) -> bool:
    """Interpret `value` as a required on/off flag.

    Raises:
        ValueError: If `value` is not an accepted flag token.
    """

    parsed = parse_flag_token(value)
    if parsed is None:
        raise ValueError(
            f"`{field_name}` must be a boolean value (`true`/`false`, `1`/`0`, `yes`/`no`)."
        )
    return parsed


def parse_bounded_int(value: object, field_name: str, *, minimum: int, maximum: int) -> int:
    """Parse an integer and require it to fall within `[minimum, maximum]`.

    Raises:
        ValueError: If the value is not an integer or lies outside the bounds.
    """

    text = None if isinstance(value, bool) else normalize_optional_string(value)
    try:
        parsed = int(text) if text is not None else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValueError(f"`{field_name}` must be an integer.")
    if not minimum <= parsed <= maximum:
        raise ValueError(f"`{field_name}` must be between {minimum} and {maximum}.")
    return parsed
