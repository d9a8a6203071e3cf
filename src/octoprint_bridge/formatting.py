"""Value formatting and version helpers."""

import datetime


def printtime_string(seconds: int | float | None) -> str:
    """Render a duration as ``HH:MM:SS``, prefixed with ``<days>D`` above one day.

    Negative or missing durations render as zero.

    Usage Example:
    ```python
        >>> printtime_string(3725)
        '01:02:05'
        >>> printtime_string(90061)
        '1D01:01:01'
    ```
    """
    total = max(int(seconds or 0), 0)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    mins, secs = divmod(rest, 60)

    clock = f"{hours:02d}:{mins:02d}:{secs:02d}"
    return f"{days}D{clock}" if days > 0 else clock


def format_timestamp(epoch_ms: int, date_format: str) -> str:
    """Render an epoch timestamp in milliseconds as local time; empty for 0."""
    if not epoch_ms:
        return ""
    return datetime.datetime.fromtimestamp(epoch_ms / 1000).strftime(date_format)


def _version_part(part: str) -> int:
    return int(part) if part.isdigit() else 0


def is_newer_version(old_version: str, new_version: str) -> bool:
    """True if ``new_version`` is strictly newer than ``old_version``.

    Dot-separated components are compared numerically from the left, over the components of
    ``new_version``; missing or non-numeric components count as 0.

    Usage Example:
    ```python
        >>> is_newer_version("1.8.0", "1.9.0")
        True
        >>> is_newer_version("1.10.0", "1.9.0")
        False
    ```
    """
    old_parts = old_version.split(".")
    for index, part in enumerate(new_version.split(".")):
        new = _version_part(part)
        old = _version_part(old_parts[index]) if index < len(old_parts) else 0
        if new > old:
            return True
        if new < old:
            return False
    return False
