"""Error types raised by the ChillTap Buddy core."""


class ConfigurationError(ValueError):
    """
    Raised when a component is constructed with invalid settings.

    This is the only fatal condition in the core. It is raised at
    construction time, before any session can start.
    """


def require_positive(name: str, value) -> None:
    """Raise ConfigurationError unless value is a number greater than zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero, got {value!r}")


def require_non_negative(name: str, value) -> None:
    """Raise ConfigurationError unless value is a number >= 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value!r}")


def require_whole(name: str, value) -> None:
    """Raise ConfigurationError unless value is an int (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be a whole number, got {value!r}")
