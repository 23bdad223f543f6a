"""Collaborators that supply prices, institutional flows and ticker names.

This module provides abstract interfaces for the three collaborators the
scanner depends on, plus concrete implementations for Yahoo Finance and CSV
files. Network access is limited to the yfinance client; every source
reports failures as :class:`~flowscan.exceptions.DataSourceError`.
"""

from __future__ import annotations

import csv
import logging
import math
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence

from flowscan.dates import normalize_date_key
from flowscan.exceptions import DataSourceError, DataValidationError
from flowscan.indicators import round_price
from flowscan.types import Bar, InstitutionalRecord, SourceSpec, TickerId

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class PriceSource(ABC):
    """Abstract base class for daily price sources."""

    @abstractmethod
    def fetch_bars(self, ticker: TickerId, days: int) -> Iterator[Bar]:
        """Fetch the most recent daily bars for a ticker.

        :param ticker: Ticker code (e.g. "2330").
        :param days: Size of the lookback window.
        :returns: Iterator of bars, oldest first. Empty when there is no data.
        :raises DataSourceError: If fetching fails.
        """
        ...


class FlowSource(ABC):
    """Abstract base class for institutional buy/sell record sources."""

    @abstractmethod
    def fetch_records(
        self,
        ticker: TickerId,
        start: date,
        end: date,
    ) -> Iterator[InstitutionalRecord]:
        """Fetch raw institutional records for a ticker.

        :param ticker: Ticker code.
        :param start: First date to include.
        :param end: Last date to include.
        :returns: Iterator of records in no particular order.
        :raises DataSourceError: If fetching fails.
        """
        ...


class NameLookup(ABC):
    """Abstract base class for ticker display-name lookups."""

    @abstractmethod
    def lookup(self, ticker: TickerId) -> str:
        """Return the display name of a ticker, or an empty string."""
        ...


# ---------------------------------------------------------------------------
# Price sources
# ---------------------------------------------------------------------------


class YahooPriceSource(PriceSource):
    """Price source backed by Yahoo Finance via yfinance.

    :param source_params: Optional parameters for configuring the source.
        - suffix: Exchange suffix appended to the ticker (default: ".TW")
        - timeout: Request timeout in seconds (default: 30)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize Yahoo price source.

        :param source_params: Optional configuration parameters.
        """
        self.params = source_params or {}
        self.suffix = self.params.get("suffix", ".TW")
        self.timeout = self.params.get("timeout", 30)

    def fetch_bars(self, ticker: TickerId, days: int) -> Iterator[Bar]:
        """Fetch daily bars from Yahoo Finance.

        Rows with a missing close are dropped.

        :param ticker: Ticker code.
        :param days: Lookback window in days.
        :returns: Iterator of bars, oldest first.
        :raises DataSourceError: If fetching fails.
        """
        try:
            import yfinance as yf
        except ImportError as e:
            raise DataSourceError(
                "yfinance is not installed. Install it with: pip install yfinance"
            ) from e

        symbol = f"{ticker}{self.suffix}"
        try:
            df = yf.Ticker(symbol).history(
                period=f"{days}d",
                interval="1d",
                timeout=self.timeout,
            )
        except Exception as e:
            raise DataSourceError(f"Failed to fetch prices for '{symbol}': {e}") from e

        if df.empty:
            logger.warning("Yahoo returned no prices for %s", symbol)
            return

        for timestamp, row in df.iterrows():
            close = float(row["Close"])
            if math.isnan(close):
                continue
            volume = row["Volume"]
            yield Bar(
                date=timestamp.strftime("%Y-%m-%d"),
                open=round_price(float(row["Open"])),
                high=round_price(float(row["High"])),
                low=round_price(float(row["Low"])),
                close=round_price(close),
                volume=0 if math.isnan(float(volume)) else int(volume),
            )


class CSVPriceSource(PriceSource):
    """Price source that reads daily bars from a CSV file.

    Expected CSV format (default columns):
    - ticker: Ticker code
    - date: ISO or slash-separated date
    - open, high, low, close: Prices
    - volume: Shares traded

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - ticker_col, date_col, open_col, high_col, low_col, close_col,
          volume_col: Column names (defaults as above)
        - delimiter: CSV delimiter (default: ",")
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize CSV price source.

        :param source_params: Configuration with file_path and optional column mappings.
        :raises DataSourceError: If file_path is not provided.
        """
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise DataSourceError("CSVPriceSource requires 'file_path' in source_params")

        self.ticker_col = self.params.get("ticker_col", "ticker")
        self.date_col = self.params.get("date_col", "date")
        self.open_col = self.params.get("open_col", "open")
        self.high_col = self.params.get("high_col", "high")
        self.low_col = self.params.get("low_col", "low")
        self.close_col = self.params.get("close_col", "close")
        self.volume_col = self.params.get("volume_col", "volume")
        self.delimiter = self.params.get("delimiter", ",")

    def fetch_bars(self, ticker: TickerId, days: int) -> Iterator[Bar]:
        """Read the last ``days`` bars of a ticker, oldest first.

        :param ticker: Ticker code to filter on.
        :param days: Number of most recent bars to return.
        :returns: Iterator of bars.
        :raises DataSourceError: If the file is missing or a row is malformed.
        """
        keyed: list[tuple[str, Bar]] = []
        for row in _read_csv_rows(self.file_path, self.delimiter):
            if (row.get(self.ticker_col) or "").strip() != str(ticker):
                continue
            try:
                bar = Bar(
                    date=row[self.date_col].strip(),
                    open=float(row[self.open_col]),
                    high=float(row[self.high_col]),
                    low=float(row[self.low_col]),
                    close=float(row[self.close_col]),
                    volume=int(float(row[self.volume_col])),
                )
                keyed.append((normalize_date_key(bar.date), bar))
            except (KeyError, ValueError, AttributeError) as e:
                raise DataSourceError(f"Failed to parse row {row}: {e}") from e

        if days <= 0:
            return
        keyed.sort(key=lambda item: item[0])
        for _, bar in keyed[-days:]:
            yield bar


class FallbackPriceSource(PriceSource):
    """Try several price sources in order and return the first non-empty result.

    A source that raises is logged and skipped. If every source raised, the
    last error is re-raised.

    :param sources: Price sources in priority order.
    """

    def __init__(self, sources: Sequence[PriceSource]) -> None:
        if not sources:
            raise DataSourceError("FallbackPriceSource needs at least one source")
        self.sources = list(sources)

    def fetch_bars(self, ticker: TickerId, days: int) -> Iterator[Bar]:
        last_error: DataSourceError | None = None
        failures = 0
        for source in self.sources:
            try:
                bars = list(source.fetch_bars(ticker, days))
            except DataSourceError as e:
                logger.warning(
                    "%s failed for %s: %s", type(source).__name__, ticker, e
                )
                last_error = e
                failures += 1
                continue
            if bars:
                return iter(bars)
            logger.info(
                "%s has no prices for %s, trying next source",
                type(source).__name__,
                ticker,
            )

        if last_error is not None and failures == len(self.sources):
            raise last_error
        return iter([])


# ---------------------------------------------------------------------------
# Flow sources
# ---------------------------------------------------------------------------


class CSVFlowSource(FlowSource):
    """Flow source that reads institutional buy/sell records from a CSV file.

    Defaults follow the FinMind ``TaiwanStockInstitutionalInvestorsBuySell``
    dataset layout: ``date, stock_id, name, buy, sell``.

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - date_col, ticker_col, subtype_col, buy_col, sell_col: Column names
        - delimiter: CSV delimiter (default: ",")
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize CSV flow source.

        :param source_params: Configuration with file_path and optional column mappings.
        :raises DataSourceError: If file_path is not provided.
        """
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise DataSourceError("CSVFlowSource requires 'file_path' in source_params")

        self.date_col = self.params.get("date_col", "date")
        self.ticker_col = self.params.get("ticker_col", "stock_id")
        self.subtype_col = self.params.get("subtype_col", "name")
        self.buy_col = self.params.get("buy_col", "buy")
        self.sell_col = self.params.get("sell_col", "sell")
        self.delimiter = self.params.get("delimiter", ",")

    def fetch_records(
        self,
        ticker: TickerId,
        start: date,
        end: date,
    ) -> Iterator[InstitutionalRecord]:
        """Read records of a ticker dated within ``[start, end]``.

        :param ticker: Ticker code to filter on.
        :param start: First date to include.
        :param end: Last date to include.
        :returns: Iterator of records in file order.
        :raises DataSourceError: If the file is missing or a row is malformed.
        """
        start_key = normalize_date_key(start)
        end_key = normalize_date_key(end)

        for row in _read_csv_rows(self.file_path, self.delimiter):
            if (row.get(self.ticker_col) or "").strip() != str(ticker):
                continue
            try:
                key = normalize_date_key(row[self.date_col])
                if key < start_key or key > end_key:
                    continue
                yield InstitutionalRecord(
                    date=key,
                    ticker_id=TickerId(str(ticker)),
                    subtype=row[self.subtype_col].strip(),
                    buy_volume=int(float(row[self.buy_col])),
                    sell_volume=int(float(row[self.sell_col])),
                )
            except (KeyError, ValueError, AttributeError, DataValidationError) as e:
                raise DataSourceError(f"Failed to parse row {row}: {e}") from e


# ---------------------------------------------------------------------------
# Name lookups
# ---------------------------------------------------------------------------


class MappingNameLookup(NameLookup):
    """Name lookup backed by an in-memory mapping."""

    def __init__(self, names: Mapping[str, str] | None = None) -> None:
        self.names = dict(names or {})

    def lookup(self, ticker: TickerId) -> str:
        return self.names.get(str(ticker), "").strip()


class ChainedNameLookup(NameLookup):
    """Ask several lookups in order; the first non-empty answer wins.

    A lookup raising :class:`DataSourceError` counts as no answer.
    """

    def __init__(self, lookups: Sequence[NameLookup]) -> None:
        self.lookups = list(lookups)

    def lookup(self, ticker: TickerId) -> str:
        for lookup in self.lookups:
            try:
                name = lookup.lookup(ticker)
            except DataSourceError as e:
                logger.warning(
                    "%s failed for %s: %s", type(lookup).__name__, ticker, e
                )
                continue
            if name:
                return name
        return ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_csv_rows(file_path: str | Path, delimiter: str) -> list[dict[str, str]]:
    path = Path(file_path)
    if not path.exists():
        raise DataSourceError(f"CSV file not found: {file_path}")

    try:
        with open(path, newline="", encoding="utf-8-sig") as f:
            return list(csv.DictReader(f, delimiter=delimiter))
    except csv.Error as e:
        raise DataSourceError(f"CSV parsing error: {e}") from e
    except OSError as e:
        raise DataSourceError(f"Failed to read CSV file: {e}") from e


def resolve_price_source(spec: SourceSpec) -> PriceSource:
    """Construct a price source from configuration.

    ``fallback`` takes a ``sources`` list of nested ``{source, params}``
    mappings and tries them in order.

    :param spec: Source type and parameters.
    :returns: PriceSource instance for the specified type.
    :raises DataSourceError: If the source type is unrecognized.
    """
    source_type = spec.source.lower()

    if source_type == "yahoo":
        return YahooPriceSource(spec.params)
    elif source_type == "csv":
        return CSVPriceSource(spec.params)
    elif source_type == "fallback":
        nested = spec.params.get("sources") or []
        try:
            specs = [SourceSpec.model_validate(item) for item in nested]
        except ValueError as e:
            raise DataSourceError(f"Invalid fallback source list: {e}") from e
        return FallbackPriceSource([resolve_price_source(s) for s in specs])
    else:
        raise DataSourceError(
            f"Unrecognized price source type: '{spec.source}'. "
            f"Supported types: yahoo, csv, fallback"
        )


def resolve_flow_source(spec: SourceSpec) -> FlowSource:
    """Construct an institutional flow source from configuration.

    :param spec: Source type and parameters.
    :returns: FlowSource instance for the specified type.
    :raises DataSourceError: If the source type is unrecognized.
    """
    source_type = spec.source.lower()

    if source_type == "csv":
        return CSVFlowSource(spec.params)
    else:
        raise DataSourceError(
            f"Unrecognized flow source type: '{spec.source}'. "
            f"Supported types: csv"
        )
