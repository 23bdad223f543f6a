"""Date-key normalization shared by the aligner and the flow aggregator.

Price sources deliver dates either as ISO ``YYYY-MM-DD`` strings or as
slash-separated locale strings (``2024/10/5`` in the zh-TW locale,
``10/5/2024`` in en-US). Institutional flow records are keyed by ISO date.
Joining the two requires exact key equality, so every conversion goes
through :func:`normalize_date_key`.
"""

from __future__ import annotations

from datetime import date, datetime

from flowscan.exceptions import DataValidationError

ISO_FORMAT = "%Y-%m-%d"


def _parse_slash_date(value: str) -> date:
    parts = [p.strip() for p in value.split("/")]
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise DataValidationError(f"Unrecognized locale date: {value!r}")

    if len(parts[0]) == 4:
        year, month, day = (int(p) for p in parts)
    else:
        month, day, year = (int(p) for p in parts)

    try:
        return date(year, month, day)
    except ValueError as e:
        raise DataValidationError(f"Invalid date {value!r}: {e}") from e


def normalize_date_key(value: str | date | datetime) -> str:
    """Convert a date value to its canonical ``YYYY-MM-DD`` key.

    Strings containing ``/`` are parsed as locale dates (year first when the
    first component has four digits, otherwise month/day/year). Any other
    string must already be ISO; a trailing time component is dropped.

    :param value: Date string, ``date`` or ``datetime``.
    :returns: ISO date key.
    :raises DataValidationError: If the value cannot be interpreted.
    """
    if isinstance(value, datetime):
        return value.date().strftime(ISO_FORMAT)
    if isinstance(value, date):
        return value.strftime(ISO_FORMAT)
    if not isinstance(value, str):
        raise DataValidationError(f"Unsupported date value: {value!r}")

    text = value.strip()
    if "/" in text:
        # Drop a trailing time part such as "2024/10/5 上午12:00:00"
        return _parse_slash_date(text.split()[0]).strftime(ISO_FORMAT)

    head = text.split("T")[0].split(" ")[0]
    try:
        return datetime.strptime(head, ISO_FORMAT).strftime(ISO_FORMAT)
    except ValueError as e:
        raise DataValidationError(f"Invalid ISO date {value!r}: {e}") from e


def try_normalize_date_key(value: str | date | datetime) -> str | None:
    """Like :func:`normalize_date_key` but returns None instead of raising."""
    try:
        return normalize_date_key(value)
    except DataValidationError:
        return None


__all__ = ["ISO_FORMAT", "normalize_date_key", "try_normalize_date_key"]
