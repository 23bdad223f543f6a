"""Keyed join of price bars with daily institutional flows.

Price and flow series cover different calendars (weekends, holidays, gaps in
either feed), so bars are matched to flows by normalized date key and never
by position.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence, Union

from flowscan.dates import try_normalize_date_key
from flowscan.flows import flow_map
from flowscan.types import AlignedBar, Bar, DailyFlow

logger = logging.getLogger(__name__)

FlowsInput = Union[Mapping[str, DailyFlow], Iterable[DailyFlow]]


def _as_map(flows: FlowsInput | None) -> Mapping[str, DailyFlow]:
    if flows is None:
        return {}
    if isinstance(flows, Mapping):
        return flows
    return flow_map(flows)


def align_bar(bar: Bar, flows: Mapping[str, DailyFlow]) -> AlignedBar:
    """Attach the nets of the flow recorded on the bar's date, if any.

    :param bar: Price bar, with an ISO or locale date.
    :param flows: Daily flows keyed by ISO date.
    :returns: Aligned bar; nets are None when no flow matches.
    """
    key = try_normalize_date_key(bar.date)
    if key is None:
        logger.warning("Unparseable bar date %r, leaving flow columns blank", bar.date)
        return AlignedBar(bar=bar)

    flow = flows.get(key)
    if flow is None:
        return AlignedBar(bar=bar, date_key=key)

    return AlignedBar(
        bar=bar,
        date_key=key,
        foreign_net=flow.foreign_net,
        trust_net=flow.trust_net,
        dealer_net=flow.dealer_net,
    )


def align_flows(bars: Sequence[Bar], flows: FlowsInput | None) -> list[AlignedBar]:
    """Align every bar of a series with its same-day flow.

    :param bars: Price bars in any order; output preserves it.
    :param flows: Daily flows, either keyed by ISO date or as a sequence.
    :returns: One aligned bar per input bar.
    """
    by_date = _as_map(flows)
    return [align_bar(bar, by_date) for bar in bars]


__all__ = ["align_bar", "align_flows"]
