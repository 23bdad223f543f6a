"""Institutional flow aggregation.

Raw per-institution buy/sell records are grouped into one
:class:`~flowscan.types.DailyFlow` per ticker and date, then summarized per
ticker into running totals, buy streaks and momentum flags.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Sequence

from flowscan.dates import try_normalize_date_key
from flowscan.types import (DailyFlow, EngineConfig, InstitutionalRecord,
                            InstitutionClass, InstitutionSubtype,
                            TickerFlowSummary, TickerId)

logger = logging.getLogger(__name__)

_KNOWN_SUBTYPES = {s.value: s for s in InstitutionSubtype}


class _Bucket:
    """Buy/sell accumulators for one (date, ticker) pair."""

    def __init__(self) -> None:
        self.buy: dict[InstitutionSubtype, int] = defaultdict(int)
        self.sell: dict[InstitutionSubtype, int] = defaultdict(int)

    def add(self, subtype: InstitutionSubtype, record: InstitutionalRecord) -> None:
        self.buy[subtype] += record.buy_volume
        self.sell[subtype] += record.sell_volume

    def to_daily_flow(self, date: str, ticker_id: TickerId) -> DailyFlow:
        foreign_buy = self.buy[InstitutionSubtype.FOREIGN_INVESTOR]
        foreign_sell = self.sell[InstitutionSubtype.FOREIGN_INVESTOR]
        trust_buy = self.buy[InstitutionSubtype.INVESTMENT_TRUST]
        trust_sell = self.sell[InstitutionSubtype.INVESTMENT_TRUST]
        dealer_buy = (
            self.buy[InstitutionSubtype.DEALER_SELF]
            + self.buy[InstitutionSubtype.DEALER_HEDGING]
        )
        dealer_sell = (
            self.sell[InstitutionSubtype.DEALER_SELF]
            + self.sell[InstitutionSubtype.DEALER_HEDGING]
        )

        foreign_net = foreign_buy - foreign_sell
        trust_net = trust_buy - trust_sell
        dealer_net = dealer_buy - dealer_sell

        return DailyFlow(
            date=date,
            ticker_id=ticker_id,
            foreign_buy=foreign_buy,
            foreign_sell=foreign_sell,
            trust_buy=trust_buy,
            trust_sell=trust_sell,
            dealer_buy=dealer_buy,
            dealer_sell=dealer_sell,
            foreign_net=foreign_net,
            trust_net=trust_net,
            dealer_net=dealer_net,
            total_net=foreign_net + trust_net + dealer_net,
        )


def sort_history(daily_flows: Iterable[DailyFlow]) -> list[DailyFlow]:
    """Order flows by ticker (lexicographic), then date ascending."""
    return sorted(daily_flows, key=lambda f: (str(f.ticker_id), f.date))


def aggregate_flows(records: Iterable[InstitutionalRecord]) -> list[DailyFlow]:
    """Group raw institutional records into daily flows.

    Records are bucketed by (ISO date, ticker). Unknown institution names
    and unparseable dates are logged and skipped.

    :param records: Raw records in any order, for one or more tickers.
    :returns: Daily flows sorted by ticker, then date ascending.
    """
    buckets: dict[tuple[str, TickerId], _Bucket] = {}

    for record in records:
        subtype = _KNOWN_SUBTYPES.get(record.subtype)
        if subtype is None:
            logger.debug(
                "Ignoring record with unrecognized subtype %r (%s %s)",
                record.subtype,
                record.ticker_id,
                record.date,
            )
            continue

        key = try_normalize_date_key(record.date)
        if key is None:
            logger.warning(
                "Skipping %s record with unparseable date %r",
                record.ticker_id,
                record.date,
            )
            continue

        bucket = buckets.setdefault((key, record.ticker_id), _Bucket())
        bucket.add(subtype, record)

    flows = [
        bucket.to_daily_flow(date, ticker_id)
        for (date, ticker_id), bucket in buckets.items()
    ]
    return sort_history(flows)


def flow_map(daily_flows: Iterable[DailyFlow]) -> dict[str, DailyFlow]:
    """Index daily flows by ISO date.

    Meant for a single ticker's flows; with several tickers later entries
    for the same date win.
    """
    return {flow.date: flow for flow in daily_flows}


def _most_recent_first(daily_flows: Iterable[DailyFlow]) -> list[DailyFlow]:
    return sorted(daily_flows, key=lambda f: f.date, reverse=True)


def consecutive_buy_days(
    daily_flows: Iterable[DailyFlow],
    institution: InstitutionClass,
) -> int:
    """Count the most recent consecutive days with a positive net.

    The walk starts at the latest date and stops at the first day whose net
    is zero or negative, so a single selling day truncates the run.

    :param daily_flows: Flows for one ticker, any order.
    :param institution: Institution class to inspect.
    :returns: Length of the buying run ending at the latest date.
    """
    count = 0
    for flow in _most_recent_first(daily_flows):
        if flow.net(institution) > 0:
            count += 1
        else:
            break
    return count


def signed_streak(daily_flows: Iterable[DailyFlow]) -> int:
    """Signed run length of the combined three-institution net.

    The latest day sets the direction. Consecutive earlier days with the
    same sign extend the run.

    :param daily_flows: Flows for one ticker, any order.
    :returns: ``+n`` for an n-day buying run, ``-n`` for selling, 0 when the
        latest day is flat or there is no data.
    """
    count = 0
    trend = 0
    for flow in _most_recent_first(daily_flows):
        current = (flow.total_net > 0) - (flow.total_net < 0)
        if count == 0:
            if current == 0:
                return 0
            trend = current
            count = 1
        elif current == trend:
            count += 1
        else:
            break
    return trend * count


def is_momentum(today: int, yesterday: int, ratio: float) -> bool:
    """True when both days are net buying and today reached ``yesterday * ratio``."""
    return today > 0 and yesterday > 0 and today >= yesterday * ratio


def momentum_flags(
    daily_flows: Iterable[DailyFlow],
    ratio: float,
) -> frozenset[InstitutionClass]:
    """Institution classes whose latest net accelerated past ``ratio``.

    Only the two most recent flows are compared.

    :param daily_flows: Flows for one ticker, any order.
    :param ratio: Required day-over-day ratio.
    :returns: Triggering classes; empty with fewer than two days of data.
    """
    recent = _most_recent_first(daily_flows)
    if len(recent) < 2:
        return frozenset()

    today, yesterday = recent[0], recent[1]
    return frozenset(
        institution
        for institution in InstitutionClass
        if is_momentum(today.net(institution), yesterday.net(institution), ratio)
    )


def summarize(
    daily_flows: Sequence[DailyFlow],
    config: EngineConfig | None = None,
) -> TickerFlowSummary | None:
    """Summarize one ticker's daily flows over the fetch window.

    :param daily_flows: Flows for a single ticker.
    :param config: Engine constants (momentum ratio).
    :returns: Summary, or None when there are no flows.
    """
    if not daily_flows:
        return None

    config = config or EngineConfig()
    ticker_id = daily_flows[0].ticker_id

    return TickerFlowSummary(
        ticker_id=ticker_id,
        days=len(daily_flows),
        foreign_net_total=sum(f.foreign_net for f in daily_flows),
        trust_net_total=sum(f.trust_net for f in daily_flows),
        dealer_net_total=sum(f.dealer_net for f in daily_flows),
        total_net_sum=sum(f.total_net for f in daily_flows),
        foreign_streak=consecutive_buy_days(daily_flows, InstitutionClass.FOREIGN),
        trust_streak=consecutive_buy_days(daily_flows, InstitutionClass.TRUST),
        dealer_streak=consecutive_buy_days(daily_flows, InstitutionClass.DEALER),
        momentum_flags=momentum_flags(daily_flows, config.momentum_ratio),
        total_signed_streak=signed_streak(daily_flows),
    )


__all__ = [
    "aggregate_flows",
    "flow_map",
    "sort_history",
    "consecutive_buy_days",
    "signed_streak",
    "is_momentum",
    "momentum_flags",
    "summarize",
]
