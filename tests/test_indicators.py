"""Tests for the moving-average engine."""

import pytest

from flowscan.indicators import (moving_average, moving_average_series,
                                 round_price)


class TestMovingAverage:
    """Tests for moving_average."""

    @pytest.mark.parametrize("n", [1, 5, 10, 20])
    def test_undefined_before_window_fills(self, n: int) -> None:
        """Indices below n-1 have no average."""
        closes = [float(x) for x in range(1, 31)]
        for i in range(n - 1):
            assert moving_average(closes, i, n) is None

    @pytest.mark.parametrize("n", [5, 10, 20])
    def test_monotonic_series_uses_exact_trailing_window(self, n: int) -> None:
        """Average equals the mean of the n closes ending at i."""
        closes = [float(x) for x in range(1, 31)]
        for i in range(n - 1, len(closes)):
            expected = round(sum(closes[i - n + 1 : i + 1]) / n, 2)
            assert moving_average(closes, i, n) == expected

    def test_constant_series(self) -> None:
        """A constant series averages to the constant."""
        closes = [42.5] * 25
        assert moving_average(closes, 24, 20) == 42.5
        assert moving_average(closes, 4, 5) == 42.5

    def test_rounds_to_two_decimals(self) -> None:
        """Results are rounded to 2 decimal places."""
        closes = [10.0, 10.0, 10.01]
        assert moving_average(closes, 2, 3) == 10.0
        assert moving_average([1.0, 2.0, 2.0], 2, 3) == 1.67

    def test_exact_half_rounds_up(self) -> None:
        """A mean ending in an exact half cent goes up, not to even."""
        assert moving_average([10.25, 10.0], 1, 2) == 10.13
        assert moving_average([0.05, 0.0], 1, 2) == 0.03

    def test_invalid_window_raises(self) -> None:
        """Non-positive windows are rejected."""
        with pytest.raises(ValueError, match="positive"):
            moving_average([1.0, 2.0], 1, 0)


class TestMovingAverageSeries:
    """Tests for moving_average_series."""

    def test_series_matches_pointwise_calls(self) -> None:
        """Series output equals calling moving_average at each index."""
        closes = [10.0, 11.0, 12.5, 13.0, 12.0, 11.5, 14.0]
        series = moving_average_series(closes, 3)

        assert len(series) == len(closes)
        assert series == [moving_average(closes, i, 3) for i in range(len(closes))]
        assert series[:2] == [None, None]

    def test_empty_series(self) -> None:
        """Empty input gives empty output."""
        assert moving_average_series([], 5) == []


class TestRoundPrice:
    """Tests for round_price."""

    @pytest.mark.parametrize(
        "value,expected",
        [(10.125, 10.13), (2.675, 2.68), (1.005, 1.01), (-1.125, -1.13), (10.124, 10.12), (42.0, 42.0)],
    )
    def test_half_up(self, value: float, expected: float) -> None:
        assert round_price(value) == expected
