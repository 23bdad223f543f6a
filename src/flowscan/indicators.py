"""Trailing simple moving averages over a close-price series."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

import numpy as np

_CENT = Decimal("0.01")


def round_price(value: float) -> float:
    """Round to 2 decimals with halves going up, so 10.125 becomes 10.13.

    The shortest repr of the float is rounded, not its binary expansion.
    """
    return float(Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def _check_window(n: int) -> None:
    if n < 1:
        raise ValueError(f"Moving average window must be positive, got {n}")


def moving_average(closes: Sequence[float], i: int, n: int) -> float | None:
    """Mean of the ``n`` closes ending at index ``i``, rounded to 2 dp.

    :param closes: Closing prices, oldest first.
    :param i: Index of the bar the average is computed for.
    :param n: Window length.
    :returns: The average, or None when fewer than ``n`` closes exist up to ``i``.
    """
    _check_window(n)
    if i < n - 1:
        return None
    window = np.asarray(closes[i - n + 1 : i + 1], dtype=float)
    return round_price(float(np.mean(window)))


def moving_average_series(closes: Sequence[float], n: int) -> list[float | None]:
    """Apply :func:`moving_average` at every index of ``closes``."""
    _check_window(n)
    return [moving_average(closes, i, n) for i in range(len(closes))]


__all__ = ["round_price", "moving_average", "moving_average_series"]
