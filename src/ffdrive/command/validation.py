"""Argument validation shared by the option setters."""

from __future__ import annotations

from ffdrive.exceptions import ConfigurationError


def format_positive(value: object, what: str, *, integer: bool = False) -> str:
    """Validate a positive number and return it as an argument token.

    Strings are checked but passed through unchanged so "29.97" is not
    rewritten by float formatting.

    Args:
        value: Number or numeric string.
        what: Description used in error messages ("Audio channels").
        integer: Require a whole number.

    Raises:
        ConfigurationError: If the value is not a positive number.
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be a number, got {value!r}")
    try:
        number = int(value) if integer else float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        kind = "an integer" if integer else "a number"
        raise ConfigurationError(f"{what} must be {kind}, got {value!r}") from e
    if integer and isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"{what} must be an integer, got {value!r}")
    if number <= 0:
        raise ConfigurationError(f"{what} must be positive, got {value!r}")
    if isinstance(value, str):
        return value.strip()
    return str(int(number)) if integer else str(value)
