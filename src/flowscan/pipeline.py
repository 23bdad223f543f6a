"""Batch scanner orchestrating collaborators and the computation engine.

Tickers are processed one at a time in the order supplied. Each ticker is
computed from its own fetched data only; a collaborator failure or an empty
fetch removes that ticker's output without stopping the batch.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Iterable

from pydantic import BaseModel, Field

from flowscan.dates import (ISO_FORMAT, normalize_date_key,
                            try_normalize_date_key)
from flowscan.exceptions import DataSourceError
from flowscan.flows import aggregate_flows, sort_history, summarize
from flowscan.selection import latest_state, select_candidates
from flowscan.signals import classify_series
from flowscan.types import (Bar, CandidateRow, DailyFlow, EngineConfig,
                            EnrichedBar, InstitutionalRecord, SelectionRule,
                            TickerFlowSummary, TickerId, TickerOverview)

if TYPE_CHECKING:
    from flowscan.data.sources import FlowSource, NameLookup, PriceSource

logger = logging.getLogger(__name__)


def _flow_start(bars: list[Bar], summary_from: date) -> date:
    """First date to fetch flows for: the oldest bar, or the summary window."""
    keys = [try_normalize_date_key(bar.date) for bar in bars]
    dates = [datetime.strptime(k, ISO_FORMAT).date() for k in keys if k is not None]
    return min(dates + [summary_from])


class TickerScan(BaseModel):
    """Everything computed for a single ticker.

    :param ticker_id: Ticker code.
    :param name: Display name, empty if unknown.
    :param bars: Classified bars, oldest first.
    :param daily_flows: Daily flows over the fetched window, oldest first.
    :param summary: Flow summary over the summary window, None without flows.
    """

    ticker_id: TickerId
    name: str = ""
    bars: list[EnrichedBar] = Field(default_factory=list)
    daily_flows: list[DailyFlow] = Field(default_factory=list)
    summary: TickerFlowSummary | None = None

    @property
    def latest(self) -> EnrichedBar | None:
        return self.bars[-1] if self.bars else None


class ScanResult(BaseModel):
    """Results from a batch scan.

    :param scans: Per-ticker results for tickers that produced any data.
    :param overview: Latest-bar snapshot per ticker with prices.
    :param flow_history: Daily flows of all tickers, by ticker then date.
    :param summaries: Flow summary per ticker with flows.
    :param candidates: Tickers selected by the screening rule.
    :param skipped: Tickers with neither prices nor flows.
    """

    scans: list[TickerScan] = Field(default_factory=list)
    overview: list[TickerOverview] = Field(default_factory=list)
    flow_history: list[DailyFlow] = Field(default_factory=list)
    summaries: list[TickerFlowSummary] = Field(default_factory=list)
    candidates: list[CandidateRow] = Field(default_factory=list)
    skipped: list[TickerId] = Field(default_factory=list)


class Scanner:
    """Run the indicator, signal and flow engine over a list of tickers.

    Example usage::

        from flowscan.data import CSVFlowSource, YahooPriceSource
        from flowscan.pipeline import Scanner

        scanner = Scanner(
            price_source=YahooPriceSource(),
            flow_source=CSVFlowSource({"file_path": "flows.csv"}),
        )
        result = scanner.run(["2330", "2603"])
        for row in result.overview:
            print(row.ticker_id, row.signal)

    Institutional records are fetched once per ticker, from the oldest
    fetched bar date (or ``today - flow_days`` if that is earlier) up to
    today. All of them are aligned with the bars; only the last ``flow_days``
    calendar days feed the flow summary.

    :param price_source: Supplies daily bars.
    :param flow_source: Supplies raw institutional records.
    :param name_lookup: Supplies display names; names are empty without it.
    :param config: Engine constants.
    :param today: Reference date for fetch windows (defaults to today).
    """

    def __init__(
        self,
        price_source: PriceSource,
        flow_source: FlowSource,
        name_lookup: NameLookup | None = None,
        config: EngineConfig | None = None,
        today: date | None = None,
    ) -> None:
        self.price_source = price_source
        self.flow_source = flow_source
        self.name_lookup = name_lookup
        self.config = config or EngineConfig()
        self.today = today

    def _fetch_bars(self, ticker: TickerId) -> list[Bar]:
        try:
            return list(self.price_source.fetch_bars(ticker, self.config.price_days))
        except DataSourceError as e:
            logger.warning("Price fetch failed for %s, treating as no data: %s", ticker, e)
            return []

    def _fetch_records(
        self,
        ticker: TickerId,
        start: date,
        end: date,
    ) -> list[InstitutionalRecord]:
        try:
            return list(self.flow_source.fetch_records(ticker, start, end))
        except DataSourceError as e:
            logger.warning("Flow fetch failed for %s, treating as no data: %s", ticker, e)
            return []

    def _lookup_name(self, ticker: TickerId) -> str:
        if self.name_lookup is None:
            return ""
        try:
            return self.name_lookup.lookup(ticker)
        except DataSourceError as e:
            logger.warning("Name lookup failed for %s: %s", ticker, e)
            return ""

    def scan_ticker(self, ticker: TickerId) -> TickerScan:
        """Fetch and compute everything for one ticker.

        :param ticker: Ticker code.
        :returns: Per-ticker result; lists are empty when data is missing.
        """
        today = self.today or date.today()
        summary_from = today - timedelta(days=self.config.flow_days)
        summary_start = normalize_date_key(summary_from)

        bars = self._fetch_bars(ticker)
        records = self._fetch_records(ticker, _flow_start(bars, summary_from), today)
        daily_flows = [f for f in aggregate_flows(records) if f.ticker_id == ticker]

        if not bars:
            logger.warning("No price data for %s", ticker)
        if not records:
            logger.warning("No institutional records for %s", ticker)

        recent_flows = [f for f in daily_flows if f.date >= summary_start]

        return TickerScan(
            ticker_id=ticker,
            name=self._lookup_name(ticker),
            bars=classify_series(bars, daily_flows, self.config),
            daily_flows=daily_flows,
            summary=summarize(recent_flows, self.config),
        )

    def run(
        self,
        tickers: Iterable[str],
        rule: SelectionRule = SelectionRule.BELOW_LONG_MA,
        now: datetime | None = None,
    ) -> ScanResult:
        """Scan every ticker in order and screen the latest states.

        :param tickers: Ticker codes, processed in the given order.
        :param rule: Selection rule for the candidate shortlist.
        :param now: Timestamp stamped on overview and candidate rows.
        :returns: Combined results of the batch.
        """
        now = now or datetime.now(timezone.utc)
        result = ScanResult()
        states = []

        for raw_ticker in tickers:
            ticker = TickerId(str(raw_ticker).strip())
            if not ticker:
                continue

            logger.info("Scanning %s", ticker)
            scan = self.scan_ticker(ticker)

            if not scan.bars and not scan.daily_flows:
                logger.warning("Skipping %s: no data", ticker)
                result.skipped.append(ticker)
                continue

            result.scans.append(scan)
            result.flow_history.extend(scan.daily_flows)
            if scan.summary is not None:
                result.summaries.append(scan.summary)

            last = scan.latest
            if last is None:
                continue

            result.overview.append(
                TickerOverview(
                    ticker_id=ticker,
                    name=scan.name,
                    date=last.date,
                    close=last.close,
                    volume=last.volume,
                    signal=last.signal,
                    entry=last.entry,
                    stop=last.stop,
                    target=last.target,
                    advice=last.advice,
                    updated_at=now,
                )
            )
            summary = scan.summary
            state = latest_state(
                ticker,
                scan.name,
                scan.bars,
                foreign_streak=summary.foreign_streak if summary else 0,
                total_signed_streak=summary.total_signed_streak if summary else 0,
            )
            if state is not None:
                states.append(state)

        result.flow_history = sort_history(result.flow_history)
        result.candidates = select_candidates(states, rule, now)
        logger.info(
            "Scan finished: %d tickers, %d skipped, %d candidates",
            len(result.scans),
            len(result.skipped),
            len(result.candidates),
        )
        return result


__all__ = ["TickerScan", "ScanResult", "Scanner"]
