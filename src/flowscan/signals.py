"""Signal classification for daily bars.

Each bar is classified from its moving-average ordering (the regime) and
from a large-volume candle check (the large-player overlay). Decisions are
expressed as :class:`~flowscan.types.SignalTag` tuples; turning them into
display text is a separate rendering step.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from pydantic import BaseModel

from flowscan.align import FlowsInput, align_flows
from flowscan.indicators import moving_average_series, round_price
from flowscan.types import (ADVICE_SEPARATOR, SIGNAL_SEPARATOR, Bar,
                            EngineConfig, EnrichedBar, SignalTag,
                            render_advice, render_signal)


class Classification(BaseModel):
    """Outcome of classifying a single bar.

    :param tags: Signal tags, regime first.
    :param entry: Suggested entry price, None without a regime.
    :param stop: Suggested stop price, None without a regime.
    :param target: Suggested target price, None without a regime.
    """

    tags: tuple[SignalTag, ...] = ()
    entry: float | None = None
    stop: float | None = None
    target: float | None = None


def _defined(*values: float | None) -> bool:
    # Zero averages count as undefined, like missing ones
    return all(v is not None and v != 0 for v in values)


def classify_bar(
    bars: Sequence[Bar],
    i: int,
    ma_short: float | None,
    ma_mid: float | None,
    ma_long: float | None,
    config: EngineConfig | None = None,
) -> Classification:
    """Classify ``bars[i]`` given its moving averages.

    :param bars: Bar series, oldest first.
    :param i: Index of the bar to classify.
    :param ma_short: Short window average at ``i``.
    :param ma_mid: Mid window average at ``i``.
    :param ma_long: Long window average at ``i``.
    :param config: Engine constants.
    :returns: Tags and price levels for the bar.
    """
    config = config or EngineConfig()
    bar = bars[i]

    low_window = bars[max(0, i - config.low_lookback + 1) : i + 1]
    high_window = bars[max(0, i - config.high_lookback + 1) : i + 1]
    volume_window = bars[max(0, i - config.volume_lookback + 1) : i + 1]

    recent_low = min(b.low for b in low_window)
    recent_high = max(b.high for b in high_window)
    avg_volume = float(np.mean([b.volume for b in volume_window]))

    tags: list[SignalTag] = []
    entry = stop = target = None

    if _defined(ma_short, ma_mid, ma_long):
        if ma_short > ma_mid > ma_long:
            tags.append(SignalTag.BULLISH)
            entry = round_price(ma_short)
            stop = round_price(min(recent_low, ma_mid) * config.bullish_stop_factor)
            target = round_price(max(recent_high, ma_long) * config.bullish_target_factor)
        elif ma_short < ma_mid < ma_long:
            tags.append(SignalTag.BEARISH)
            entry = round_price(ma_mid)
            stop = round_price(max(recent_high, ma_short) * config.bearish_stop_factor)
            target = round_price(min(recent_low, ma_long) * config.bearish_target_factor)

    heavy_volume = bar.volume > avg_volume * config.volume_multiplier
    if bar.close > bar.open and heavy_volume:
        tags.append(SignalTag.PLAYER_ENTRY)
    if bar.close < bar.open and heavy_volume:
        tags.append(SignalTag.PLAYER_EXIT)

    return Classification(tags=tuple(tags), entry=entry, stop=stop, target=target)


def classify_series(
    bars: Sequence[Bar],
    flows: FlowsInput | None = None,
    config: EngineConfig | None = None,
) -> list[EnrichedBar]:
    """Compute averages and signals for every bar of a series.

    When ``flows`` is given, each bar also receives the institutional nets of
    the same date; otherwise the net fields stay None.

    :param bars: Bar series for one ticker, oldest first.
    :param flows: Daily flows keyed by ISO date, or a sequence of them.
    :param config: Engine constants.
    :returns: One enriched bar per input bar.
    """
    config = config or EngineConfig()
    if not bars:
        return []

    closes = [bar.close for bar in bars]
    ma_short = moving_average_series(closes, config.short_window)
    ma_mid = moving_average_series(closes, config.mid_window)
    ma_long = moving_average_series(closes, config.long_window)
    aligned = align_flows(bars, flows)

    enriched: list[EnrichedBar] = []
    for i, bar in enumerate(bars):
        result = classify_bar(bars, i, ma_short[i], ma_mid[i], ma_long[i], config)
        row = aligned[i]
        enriched.append(
            EnrichedBar(
                **bar.model_dump(),
                date_key=row.date_key,
                ma5=ma_short[i],
                ma10=ma_mid[i],
                ma20=ma_long[i],
                tags=result.tags,
                entry=result.entry,
                stop=result.stop,
                target=result.target,
                foreign_net=row.foreign_net,
                trust_net=row.trust_net,
                dealer_net=row.dealer_net,
            )
        )
    return enriched


__all__ = [
    "SIGNAL_SEPARATOR",
    "ADVICE_SEPARATOR",
    "Classification",
    "render_signal",
    "render_advice",
    "classify_bar",
    "classify_series",
]
