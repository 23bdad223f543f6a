"""Tests for core type definitions."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from flowscan import signals
from flowscan.types import (SIGNAL_SEPARATOR, Bar, DailyFlow, EngineConfig,
                            EnrichedBar, InstitutionClass, InstitutionSubtype,
                            ScanConfig, SignalTag, SourceSpec,
                            TickerFlowSummary, TickerId, TickerOverview,
                            render_advice, render_signal)

# ---------------------------------------------------------------------------
# Market Data Tests
# ---------------------------------------------------------------------------


def test_bar_creation_and_attributes() -> None:
    """Bar should store all OHLCV fields and keep the raw date."""
    bar = Bar(date="10/5/2024", open=1.0, high=2.0, low=0.5, close=1.5, volume=1234)

    assert bar.date == "10/5/2024"
    assert (bar.open, bar.high, bar.low, bar.close, bar.volume) == (1.0, 2.0, 0.5, 1.5, 1234)


def test_bar_rejects_negative_volume() -> None:
    with pytest.raises(ValidationError):
        Bar(date="2024-10-01", open=1, high=1, low=1, close=1, volume=-1)


def test_bar_is_frozen() -> None:
    """Models should be immutable."""
    bar = Bar(date="2024-10-01", open=1, high=1, low=1, close=1, volume=1)
    with pytest.raises(ValidationError):
        bar.close = 2.0  # type: ignore[misc]


def test_enriched_bar_is_subclass_of_bar() -> None:
    enriched = EnrichedBar(date="2024-10-01", open=1, high=1, low=1, close=1, volume=1)

    assert isinstance(enriched, Bar)
    assert enriched.ma5 is None
    assert enriched.tags == ()


def test_enriched_bar_renders_signal_and_advice() -> None:
    """signal and advice are computed from tags and appear in dumps."""
    enriched = EnrichedBar(
        date="2024-10-01", open=1, high=1, low=1, close=1, volume=1,
        tags=(SignalTag.BEARISH, SignalTag.PLAYER_EXIT),
    )

    assert enriched.signal == "空頭排列＋主力出場"
    assert enriched.advice == "空頭格局，建議觀望或反彈減碼；主力黑K留意隔日回檔或出貨"
    dumped = enriched.model_dump()
    assert dumped["signal"] == enriched.signal
    assert dumped["advice"] == enriched.advice


def test_rendering_lives_with_the_models() -> None:
    """signals re-exports the renderers that EnrichedBar uses."""
    tags = (SignalTag.BULLISH, SignalTag.PLAYER_ENTRY)

    assert render_signal(tags) == f"多頭排列{SIGNAL_SEPARATOR}主力進場"
    assert render_advice(()) == ""
    assert signals.render_signal is render_signal
    assert signals.render_advice is render_advice


def test_signal_tag_values_and_advice() -> None:
    assert SignalTag.BULLISH.value == "多頭排列"
    assert SignalTag.PLAYER_ENTRY.advice == "主力紅K留意隔日續攻"
    assert SignalTag.BULLISH.is_regime
    assert not SignalTag.PLAYER_EXIT.is_regime


def test_identifier_newtype_wraps_strings() -> None:
    ticker = TickerId("2330")

    assert isinstance(ticker, str)
    assert ticker == "2330"


# ---------------------------------------------------------------------------
# Institutional Flow Tests
# ---------------------------------------------------------------------------


def test_institution_subtype_values() -> None:
    """Subtype values match the raw record names."""
    assert {s.value for s in InstitutionSubtype} == {
        "Foreign_Investor",
        "Investment_Trust",
        "Dealer_self",
        "Dealer_Hedging",
    }


def test_daily_flow_total_must_equal_sum() -> None:
    """total_net must equal foreign + trust + dealer."""
    with pytest.raises(ValidationError, match="total_net"):
        DailyFlow(
            date="2024-10-01",
            ticker_id=TickerId("2330"),
            foreign_net=1,
            trust_net=2,
            dealer_net=3,
            total_net=7,
        )


def test_daily_flow_net_by_class() -> None:
    flow = DailyFlow(
        date="2024-10-01",
        ticker_id=TickerId("2330"),
        foreign_net=1,
        trust_net=2,
        dealer_net=3,
        total_net=6,
    )

    assert flow.net(InstitutionClass.FOREIGN) == 1
    assert flow.net(InstitutionClass.TRUST) == 2
    assert flow.net(InstitutionClass.DEALER) == 3
    assert flow.foreign_buy == 0


def test_ticker_flow_summary_streak_by_class() -> None:
    summary = TickerFlowSummary(
        ticker_id=TickerId("2330"),
        days=5,
        foreign_net_total=10,
        trust_net_total=0,
        dealer_net_total=-3,
        total_net_sum=7,
        foreign_streak=4,
        trust_streak=0,
        dealer_streak=1,
    )

    assert summary.streak(InstitutionClass.FOREIGN) == 4
    assert summary.streak(InstitutionClass.DEALER) == 1
    assert summary.momentum_flags == frozenset()


def test_ticker_overview_defaults() -> None:
    ts = datetime(2024, 10, 1, tzinfo=timezone.utc)
    row = TickerOverview(
        ticker_id=TickerId("2330"), name="", date="2024-10-01", close=1.0, volume=1, updated_at=ts
    )

    assert row.signal == ""
    assert row.entry is None
    assert row.updated_at == ts


# ---------------------------------------------------------------------------
# Configuration Tests
# ---------------------------------------------------------------------------


def test_engine_config_defaults() -> None:
    config = EngineConfig()

    assert (config.short_window, config.mid_window, config.long_window) == (5, 10, 20)
    assert config.volume_multiplier == 1.5
    assert config.momentum_ratio == 1.2
    assert (config.bullish_stop_factor, config.bullish_target_factor) == (0.99, 1.03)
    assert (config.bearish_stop_factor, config.bearish_target_factor) == (1.01, 0.97)
    assert (config.price_days, config.flow_days) == (30, 5)


@pytest.mark.parametrize("windows", [(10, 5, 20), (5, 5, 20), (5, 20, 10)])
def test_engine_config_requires_increasing_windows(windows: tuple) -> None:
    short, mid, long = windows
    with pytest.raises(ValidationError, match="short < mid < long"):
        EngineConfig(short_window=short, mid_window=mid, long_window=long)


def test_engine_config_rejects_non_positive_window() -> None:
    with pytest.raises(ValidationError):
        EngineConfig(short_window=0)


def test_scan_config_defaults() -> None:
    config = ScanConfig(
        tickers=[TickerId("2330")],
        prices=SourceSpec(source="yahoo"),
        flows=SourceSpec(source="csv", params={"file_path": "x.csv"}),
    )

    assert config.names == {}
    assert config.engine == EngineConfig()
    assert config.selection_rule.value == "below_long_ma"
    assert config.log_level == "INFO"
    assert config.prices.params == {}
