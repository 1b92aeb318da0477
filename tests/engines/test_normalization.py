"""
Tests for sentiment_engines.normalization -- raw signals to 0-100 components.
"""

from decimal import Decimal

import pytest

from sentiment_engines.normalization import (
    NEUTRAL_SCORE,
    InvestorFlow,
    RawMarketSignals,
    investor_sentiment_score,
    momentum_score,
    normalize_signals,
    put_call_score,
    safe_haven_score,
    volatility_score,
)
from sentiment_engines.scoring import COMPONENT_NAMES


class TestMomentum:
    def test_needs_twenty_closes(self):
        assert momentum_score([Decimal(100)] * 19) is None

    def test_flat_market(self):
        # ma20 == ma120 -> (1 - 0.9) * 500 = 50
        assert momentum_score([Decimal(100)] * 120) == 50.0

    def test_rally_clamped(self):
        closes = [Decimal(200)] * 20 + [Decimal(100)] * 100
        assert momentum_score(closes) == 100.0


class TestInvestorSentiment:
    def test_no_flows(self):
        assert investor_sentiment_score([]) is None

    def test_balanced_flows_neutral(self):
        flow = InvestorFlow(foreign_buy=Decimal(10), foreign_sell=Decimal(10))
        assert investor_sentiment_score([flow]) == 50.0

    def test_heavy_buying_saturates(self):
        flow = InvestorFlow(foreign_buy=Decimal("20000000000000"))
        assert investor_sentiment_score([flow]) == 100.0

    def test_net_combines_foreign_and_institutional(self):
        flow = InvestorFlow(
            foreign_buy=Decimal(5),
            foreign_sell=Decimal(2),
            institutional_buy=Decimal(1),
            institutional_sell=Decimal(3),
        )
        assert flow.net == Decimal(1)


class TestRatioScales:
    @pytest.mark.parametrize(
        "ratio,expected",
        [(Decimal("0.5"), 100.0), (Decimal("2.0"), 0.0), (Decimal("3.0"), 0.0)],
    )
    def test_put_call(self, ratio, expected):
        assert put_call_score(ratio) == pytest.approx(expected, abs=0.01)

    def test_put_call_missing(self):
        assert put_call_score(None) is None

    @pytest.mark.parametrize(
        "vkospi,expected",
        [(Decimal(10), 100.0), (Decimal(25), 50.05), (Decimal(45), 0.0)],
    )
    def test_volatility(self, vkospi, expected):
        assert volatility_score(vkospi) == pytest.approx(expected)

    def test_safe_haven_spread(self):
        # spread 0.75 -> (0.75 + 0.5) * 40 = 50
        assert safe_haven_score(Decimal("3.25"), Decimal("4.00")) == 50.0

    def test_safe_haven_needs_both_yields(self):
        assert safe_haven_score(Decimal("3.0"), None) is None
        assert safe_haven_score(None, Decimal("3.0")) is None


class TestNormalizeSignals:
    def test_all_missing_falls_back_to_neutral(self):
        result = normalize_signals(RawMarketSignals())
        assert result.missing == frozenset(COMPONENT_NAMES)
        assert not result.complete
        assert set(result.components.as_dict().values()) == {NEUTRAL_SCORE}

    def test_complete_signals(self):
        signals = RawMarketSignals(
            closes=tuple([Decimal(100)] * 120),
            flows=(InvestorFlow(),),
            put_call_ratio=Decimal("0.5"),
            vkospi=Decimal(10),
            yield_3y=Decimal("3.25"),
            yield_10y=Decimal("4.00"),
        )
        result = normalize_signals(signals)
        assert result.complete
        assert result.components.momentum == 50.0
        assert result.components.sentiment == 50.0
        assert result.components.volatility == 100.0

    def test_partial_signals_report_missing(self):
        result = normalize_signals(RawMarketSignals(vkospi=Decimal(40)))
        assert result.missing == frozenset(
            {"momentum", "sentiment", "put_call", "safe_haven"}
        )
        assert result.components.volatility == pytest.approx(0.1)
