"""Core type definitions for the scanner.

All data models use Pydantic BaseModel for automatic validation, JSON
serialization, and better error messages.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, NewType

from pydantic import (BaseModel, ConfigDict, Field, computed_field,
                      model_validator)

# Type alias for exchange ticker codes such as "2330"
TickerId = NewType("TickerId", str)


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class Bar(FrozenModel):
    """One trading day of price data for a ticker.

    The date is kept exactly as the price source delivered it; it may be an
    ISO ``YYYY-MM-DD`` key or a slash-separated locale date. Use
    :func:`flowscan.dates.normalize_date_key` to obtain the canonical key.

    :param date: Trading date as fetched.
    :param open: Opening price.
    :param high: Highest price of the day.
    :param low: Lowest price of the day.
    :param close: Closing price.
    :param volume: Shares traded during the day.
    """

    date: str
    open: float
    high: float
    low: float
    close: float
    volume: int = Field(ge=0)


class SignalTag(str, Enum):
    """Classification outcome for a single bar.

    Regime tags (bullish/bearish) are mutually exclusive; the large-player
    tags are an independent overlay. The value is the display label.
    """

    BULLISH = "多頭排列"
    BEARISH = "空頭排列"
    PLAYER_ENTRY = "主力進場"
    PLAYER_EXIT = "主力出場"

    @property
    def advice(self) -> str:
        """Advisory text shown alongside the tag."""
        return _ADVICE[self]

    @property
    def is_regime(self) -> bool:
        return self in (SignalTag.BULLISH, SignalTag.BEARISH)


_ADVICE = {
    SignalTag.BULLISH: "多頭格局，可沿 MA5 觀察進場",
    SignalTag.BEARISH: "空頭格局，建議觀望或反彈減碼",
    SignalTag.PLAYER_ENTRY: "主力紅K留意隔日續攻",
    SignalTag.PLAYER_EXIT: "主力黑K留意隔日回檔或出貨",
}

SIGNAL_SEPARATOR = "＋"
ADVICE_SEPARATOR = "；"


def render_signal(tags: Iterable[SignalTag]) -> str:
    """Join tag labels for display, e.g. ``多頭排列＋主力進場``."""
    return SIGNAL_SEPARATOR.join(tag.value for tag in tags)


def render_advice(tags: Iterable[SignalTag]) -> str:
    """Join the advisory text of each tag."""
    return ADVICE_SEPARATOR.join(tag.advice for tag in tags)


class AlignedBar(FrozenModel):
    """A bar joined with the institutional nets recorded on the same date.

    Nets are ``None`` when no flow exists for the date, which is different
    from a genuine zero net.

    :param bar: The original price bar.
    :param date_key: ISO date key, or None if the bar date is unparseable.
    :param foreign_net: Foreign investor net for the date.
    :param trust_net: Investment trust net for the date.
    :param dealer_net: Dealer (self + hedging) net for the date.
    """

    bar: Bar
    date_key: str | None = None
    foreign_net: int | None = None
    trust_net: int | None = None
    dealer_net: int | None = None


class EnrichedBar(Bar):
    """Bar annotated with moving averages, signals and institutional nets.

    ``ma5``/``ma10``/``ma20`` hold the short, mid and long window averages
    (5/10/20 days by default). ``None`` means the window is not yet
    computable.

    :param date_key: ISO date key, or None if the bar date is unparseable.
    :param ma5: Short window moving average.
    :param ma10: Mid window moving average.
    :param ma20: Long window moving average.
    :param tags: Ordered signal tags, regime first.
    :param entry: Suggested entry price, None without a regime.
    :param stop: Suggested stop price, None without a regime.
    :param target: Suggested target price, None without a regime.
    :param foreign_net: Foreign investor net for the date.
    :param trust_net: Investment trust net for the date.
    :param dealer_net: Dealer net for the date.
    """

    date_key: str | None = None
    ma5: float | None = None
    ma10: float | None = None
    ma20: float | None = None
    tags: tuple[SignalTag, ...] = ()
    entry: float | None = None
    stop: float | None = None
    target: float | None = None
    foreign_net: int | None = None
    trust_net: int | None = None
    dealer_net: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def signal(self) -> str:
        return render_signal(self.tags)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def advice(self) -> str:
        return render_advice(self.tags)


# ---------------------------------------------------------------------------
# Institutional Flow Types
# ---------------------------------------------------------------------------


class InstitutionSubtype(str, Enum):
    """Institution names as reported in the raw buy/sell records."""

    FOREIGN_INVESTOR = "Foreign_Investor"
    INVESTMENT_TRUST = "Investment_Trust"
    DEALER_SELF = "Dealer_self"
    DEALER_HEDGING = "Dealer_Hedging"


class InstitutionClass(str, Enum):
    """Aggregated institution classes; dealer combines self and hedging."""

    FOREIGN = "foreign"
    TRUST = "trust"
    DEALER = "dealer"


class InstitutionalRecord(FrozenModel):
    """Raw buy/sell line for one ticker, date and institution subtype.

    The subtype is kept as a plain string so that records with names this
    package does not aggregate can still be represented (they are ignored).

    :param date: Trading date as reported.
    :param ticker_id: Ticker code.
    :param subtype: Institution name (see :class:`InstitutionSubtype`).
    :param buy_volume: Shares bought.
    :param sell_volume: Shares sold.
    """

    date: str
    ticker_id: TickerId
    subtype: str
    buy_volume: int = Field(ge=0)
    sell_volume: int = Field(ge=0)


class DailyFlow(FrozenModel):
    """Institutional flow aggregated per ticker and date.

    :param date: ISO date key.
    :param ticker_id: Ticker code.
    :param foreign_buy: Foreign investor shares bought.
    :param foreign_sell: Foreign investor shares sold.
    :param trust_buy: Investment trust shares bought.
    :param trust_sell: Investment trust shares sold.
    :param dealer_buy: Dealer (self + hedging) shares bought.
    :param dealer_sell: Dealer (self + hedging) shares sold.
    :param foreign_net: Foreign buy minus sell.
    :param trust_net: Trust buy minus sell.
    :param dealer_net: Dealer buy minus sell.
    :param total_net: Sum of the three nets.
    """

    date: str
    ticker_id: TickerId
    foreign_buy: int = 0
    foreign_sell: int = 0
    trust_buy: int = 0
    trust_sell: int = 0
    dealer_buy: int = 0
    dealer_sell: int = 0
    foreign_net: int
    trust_net: int
    dealer_net: int
    total_net: int

    @model_validator(mode="after")
    def _check_total(self) -> DailyFlow:
        expected = self.foreign_net + self.trust_net + self.dealer_net
        if self.total_net != expected:
            raise ValueError(
                f"total_net {self.total_net} != foreign + trust + dealer ({expected})"
            )
        return self

    def net(self, institution: InstitutionClass) -> int:
        """Return the net flow for an institution class."""
        if institution is InstitutionClass.FOREIGN:
            return self.foreign_net
        if institution is InstitutionClass.TRUST:
            return self.trust_net
        return self.dealer_net


class TickerFlowSummary(FrozenModel):
    """Flow aggregates for one ticker across a fetch window.

    :param ticker_id: Ticker code.
    :param days: Number of daily flow entries summarized.
    :param foreign_net_total: Sum of foreign nets.
    :param trust_net_total: Sum of trust nets.
    :param dealer_net_total: Sum of dealer nets.
    :param total_net_sum: Sum of total nets.
    :param foreign_streak: Most recent consecutive foreign buying days.
    :param trust_streak: Most recent consecutive trust buying days.
    :param dealer_streak: Most recent consecutive dealer buying days.
    :param momentum_flags: Classes whose latest net accelerated past the ratio.
    :param total_signed_streak: Signed run length of the combined net
        (positive for buying, negative for selling).
    """

    ticker_id: TickerId
    days: int
    foreign_net_total: int
    trust_net_total: int
    dealer_net_total: int
    total_net_sum: int
    foreign_streak: int
    trust_streak: int
    dealer_streak: int
    momentum_flags: frozenset[InstitutionClass] = frozenset()
    total_signed_streak: int = 0

    def streak(self, institution: InstitutionClass) -> int:
        """Return the buy streak for an institution class."""
        if institution is InstitutionClass.FOREIGN:
            return self.foreign_streak
        if institution is InstitutionClass.TRUST:
            return self.trust_streak
        return self.dealer_streak


# ---------------------------------------------------------------------------
# Selection Types
# ---------------------------------------------------------------------------


class SelectionRule(str, Enum):
    """Screening predicate applied to the latest per-ticker state."""

    BELOW_LONG_MA = "below_long_ma"
    BETWEEN_MAS = "between_mas"


class LatestState(FrozenModel):
    """Latest known state of a ticker, as handed to the selection filter.

    Numeric fields are kept raw because they may come from loosely typed
    sources; the filter parses them and skips what it cannot read.

    :param ticker_id: Ticker code.
    :param name: Display name, empty if unknown.
    :param close: Latest close.
    :param ma10: Latest mid window moving average.
    :param ma20: Latest long window moving average.
    :param entry: Suggested entry price carried over from classification.
    :param foreign_streak: Foreign buy streak for the ticker.
    :param total_signed_streak: Signed run of the combined three-institution
        net (negative for a selling run).
    """

    ticker_id: TickerId
    name: str = ""
    close: Any = None
    ma10: Any = None
    ma20: Any = None
    entry: Any = None
    foreign_streak: int = 0
    total_signed_streak: int = 0


class CandidateRow(FrozenModel):
    """A ticker that passed the selection filter.

    :param ticker_id: Ticker code.
    :param name: Display name.
    :param close: Latest close.
    :param ma10: Mid window moving average.
    :param ma20: Long window moving average.
    :param entry: Suggested entry price, or None.
    :param foreign_streak: Foreign buy streak (positive days only).
    :param total_signed_streak: Signed run of the combined three-institution
        net, positive for buying and negative for selling.
    :param generated_at: When the selection was produced.
    """

    ticker_id: TickerId
    name: str
    close: float
    ma10: float
    ma20: float
    entry: float | None = None
    foreign_streak: int = 0
    total_signed_streak: int = 0
    generated_at: datetime


class TickerOverview(FrozenModel):
    """Latest-bar snapshot for one ticker.

    :param ticker_id: Ticker code.
    :param name: Display name.
    :param date: Date of the latest bar.
    :param close: Latest close.
    :param volume: Latest volume.
    :param signal: Rendered signal text.
    :param entry: Suggested entry price.
    :param stop: Suggested stop price.
    :param target: Suggested target price.
    :param advice: Rendered advisory text.
    :param updated_at: When the snapshot was produced.
    """

    ticker_id: TickerId
    name: str
    date: str
    close: float
    volume: int
    signal: str = ""
    entry: float | None = None
    stop: float | None = None
    target: float | None = None
    advice: str = ""
    updated_at: datetime


# ---------------------------------------------------------------------------
# Configuration Types
# ---------------------------------------------------------------------------


class EngineConfig(FrozenModel):
    """Tunable constants for indicator, signal and flow computations.

    :param short_window: Short moving average window.
    :param mid_window: Mid moving average window.
    :param long_window: Long moving average window.
    :param low_lookback: Bars used for the recent low.
    :param high_lookback: Bars used for the recent high.
    :param volume_lookback: Bars used for the average volume.
    :param volume_multiplier: Volume over average that marks a large player.
    :param bullish_stop_factor: Stop multiplier in a bullish regime.
    :param bullish_target_factor: Target multiplier in a bullish regime.
    :param bearish_stop_factor: Stop multiplier in a bearish regime.
    :param bearish_target_factor: Target multiplier in a bearish regime.
    :param momentum_ratio: Day-over-day net ratio for the momentum trigger.
    :param price_days: Trading days of price history to fetch.
    :param flow_days: Calendar days of institutional flow to fetch.
    """

    short_window: int = Field(default=5, ge=1)
    mid_window: int = Field(default=10, ge=1)
    long_window: int = Field(default=20, ge=1)
    low_lookback: int = Field(default=5, ge=1)
    high_lookback: int = Field(default=10, ge=1)
    volume_lookback: int = Field(default=5, ge=1)
    volume_multiplier: float = Field(default=1.5, gt=0)
    bullish_stop_factor: float = 0.99
    bullish_target_factor: float = 1.03
    bearish_stop_factor: float = 1.01
    bearish_target_factor: float = 0.97
    momentum_ratio: float = Field(default=1.2, gt=0)
    price_days: int = Field(default=30, ge=1)
    flow_days: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def _check_windows(self) -> EngineConfig:
        if not self.short_window < self.mid_window < self.long_window:
            raise ValueError(
                "moving average windows must satisfy short < mid < long, got "
                f"{self.short_window}/{self.mid_window}/{self.long_window}"
            )
        return self


class SourceSpec(FrozenModel):
    """Collaborator selection: a source type and its parameters.

    :param source: Source type (e.g. "yahoo", "csv").
    :param params: Source-specific parameters.
    """

    source: str
    params: dict[str, Any] = Field(default_factory=dict)


class ScanConfig(FrozenModel):
    """Configuration for a batch scan.

    :param tickers: Tickers to process, in order.
    :param names: Known display names keyed by ticker.
    :param prices: Price source selection.
    :param flows: Institutional flow source selection.
    :param engine: Engine constants.
    :param selection_rule: Rule used by the selection filter.
    :param log_level: Logging level.
    """

    tickers: list[TickerId]
    names: dict[str, str] = Field(default_factory=dict)
    prices: SourceSpec
    flows: SourceSpec
    engine: EngineConfig = Field(default_factory=EngineConfig)
    selection_rule: SelectionRule = SelectionRule.BELOW_LONG_MA
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Type aliases
    "TickerId",
    # Base models
    "FrozenModel",
    # Market data
    "Bar",
    "SignalTag",
    "SIGNAL_SEPARATOR",
    "ADVICE_SEPARATOR",
    "render_signal",
    "render_advice",
    "AlignedBar",
    "EnrichedBar",
    # Institutional flow
    "InstitutionSubtype",
    "InstitutionClass",
    "InstitutionalRecord",
    "DailyFlow",
    "TickerFlowSummary",
    # Selection
    "SelectionRule",
    "LatestState",
    "CandidateRow",
    "TickerOverview",
    # Configuration
    "EngineConfig",
    "SourceSpec",
    "ScanConfig",
]
