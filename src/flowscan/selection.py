"""Screening of the latest per-ticker state into a candidate shortlist."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from flowscan.types import (CandidateRow, EnrichedBar, LatestState,
                            SelectionRule, TickerId)

logger = logging.getLogger(__name__)


def _to_number(value: Any) -> float | None:
    """Parse a loosely typed numeric value; None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def matches_rule(close: float, ma10: float, ma20: float, rule: SelectionRule) -> bool:
    """Evaluate a selection rule on parsed values.

    ``BELOW_LONG_MA`` keeps tickers closing strictly under the long average.
    ``BETWEEN_MAS`` keeps tickers strictly between the long and mid averages.
    """
    if rule is SelectionRule.BELOW_LONG_MA:
        return close < ma20
    if rule is SelectionRule.BETWEEN_MAS:
        return ma20 < close < ma10
    raise ValueError(f"Unsupported selection rule: {rule!r}")


def select_candidates(
    states: Iterable[LatestState],
    rule: SelectionRule = SelectionRule.BELOW_LONG_MA,
    now: datetime | None = None,
) -> list[CandidateRow]:
    """Screen latest states with ``rule``.

    States whose close, ma10 or ma20 cannot be parsed are skipped.

    :param states: Latest state per ticker.
    :param rule: Predicate to apply.
    :param now: Generation timestamp; defaults to the current UTC time.
    :returns: Matching rows in input order.
    """
    generated_at = now or datetime.now(timezone.utc)
    picks: list[CandidateRow] = []

    for state in states:
        close = _to_number(state.close)
        ma10 = _to_number(state.ma10)
        ma20 = _to_number(state.ma20)
        if close is None or ma10 is None or ma20 is None:
            logger.warning(
                "Skipping %s: non-numeric close/ma10/ma20 (%r, %r, %r)",
                state.ticker_id,
                state.close,
                state.ma10,
                state.ma20,
            )
            continue

        if not matches_rule(close, ma10, ma20, rule):
            continue

        picks.append(
            CandidateRow(
                ticker_id=state.ticker_id,
                name=state.name,
                close=close,
                ma10=ma10,
                ma20=ma20,
                entry=_to_number(state.entry),
                foreign_streak=state.foreign_streak,
                total_signed_streak=state.total_signed_streak,
                generated_at=generated_at,
            )
        )

    return picks


def latest_state(
    ticker_id: TickerId,
    name: str,
    enriched: Sequence[EnrichedBar],
    foreign_streak: int = 0,
    total_signed_streak: int = 0,
) -> LatestState | None:
    """Build the selection input from the newest bar of a classified series.

    :param foreign_streak: Foreign buy streak from the flow summary.
    :param total_signed_streak: Signed combined-net streak from the flow summary.
    :returns: The state, or None for an empty series.
    """
    if not enriched:
        return None
    last = enriched[-1]
    return LatestState(
        ticker_id=ticker_id,
        name=name,
        close=last.close,
        ma10=last.ma10,
        ma20=last.ma20,
        entry=last.entry,
        foreign_streak=foreign_streak,
        total_signed_streak=total_signed_streak,
    )


__all__ = ["matches_rule", "select_candidates", "latest_state"]
