"""
Tests for sentiment_batch.sources -- static and normalizing market data.
"""

from datetime import date
from decimal import Decimal

import pytest

from sentiment_engines.normalization import RawMarketSignals
from sentiment_kernel.exceptions import ConfigurationError, DataUnavailableError

from sentiment_batch.sources import (
    ComponentSnapshot,
    MarketDataSource,
    NormalizingMarketDataSource,
    StaticMarketDataSource,
)

from tests.helpers import components

JAN_1 = date(2024, 1, 1)


class _Provider:
    def __init__(self, signals):
        self._signals = signals

    def signals_for(self, day):
        return self._signals.get(day)


class TestStaticSource:
    def test_lookup(self):
        source = StaticMarketDataSource({JAN_1: components(70)})
        snapshot = source.components_for(JAN_1)
        assert snapshot.components == components(70)
        assert snapshot.missing == frozenset()

    def test_missing_day(self):
        with pytest.raises(DataUnavailableError) as exc_info:
            StaticMarketDataSource().components_for(JAN_1)
        assert exc_info.value.unit == "2024-01-01"

    def test_remove(self):
        source = StaticMarketDataSource({JAN_1: components(70)})
        source.remove([JAN_1])
        with pytest.raises(DataUnavailableError):
            source.components_for(JAN_1)

    def test_is_market_data_source(self):
        assert isinstance(StaticMarketDataSource(), MarketDataSource)

    def test_keeps_snapshot_missing(self):
        snapshot = ComponentSnapshot(components(50), frozenset({"momentum"}))
        source = StaticMarketDataSource({JAN_1: snapshot})
        assert source.components_for(JAN_1).missing == frozenset({"momentum"})


class TestStaticSourceFromFile:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "market.yaml"
        path.write_text(
            """
2024-01-01:
  momentum: 80
  sentiment: 70
  putCall: 60
  volatility: 50
  safeHaven: 40
2024-01-02:
  momentum: 50
  sentiment: 50
  put_call: 50
  volatility: 50
  safe_haven: 50
  missing: [momentum]
"""
        )
        source = StaticMarketDataSource.from_file(path)
        assert source.components_for(JAN_1).components.put_call == 60.0
        assert source.components_for(date(2024, 1, 2)).missing == frozenset({"momentum"})

    def test_missing_component(self, tmp_path):
        path = tmp_path / "market.yaml"
        path.write_text("2024-01-01:\n  momentum: 80\n")
        with pytest.raises(ConfigurationError):
            StaticMarketDataSource.from_file(path)

    def test_bad_date_key(self, tmp_path):
        path = tmp_path / "market.yaml"
        path.write_text("not-a-date:\n  momentum: 80\n")
        with pytest.raises(ConfigurationError):
            StaticMarketDataSource.from_file(path)

    def test_unknown_missing_name(self, tmp_path):
        path = tmp_path / "market.yaml"
        path.write_text(
            "2024-01-01: {momentum: 1, sentiment: 1, put_call: 1, volatility: 1,"
            " safe_haven: 1, missing: [breadth]}\n"
        )
        with pytest.raises(ConfigurationError):
            StaticMarketDataSource.from_file(path)


class TestNormalizingSource:
    def test_normalizes_signals(self):
        provider = _Provider({JAN_1: RawMarketSignals(vkospi=Decimal(10))})
        snapshot = NormalizingMarketDataSource(provider).components_for(JAN_1)
        assert snapshot.components.volatility == 100.0
        assert "volatility" not in snapshot.missing
        assert len(snapshot.missing) == 4

    def test_no_signals(self):
        with pytest.raises(DataUnavailableError):
            NormalizingMarketDataSource(_Provider({})).components_for(JAN_1)

    def test_all_components_missing(self):
        provider = _Provider({JAN_1: RawMarketSignals()})
        with pytest.raises(DataUnavailableError) as exc_info:
            NormalizingMarketDataSource(provider).components_for(JAN_1)
        assert exc_info.value.detail == "no usable market signals"
