"""
Module: sentiment_engines.normalization
Responsibility:
    Turn raw market inputs for one date into the five 0-100 component
    scores consumed by ``sentiment_engines.scoring``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Raw inputs are supplied
    by a market-data provider owned by the caller.

Invariants enforced:
    - Every component is clamped to [0, 100].
    - A component whose inputs are missing falls back to NEUTRAL_SCORE and
      is reported in ``NormalizedComponents.missing``.

Scales:
    momentum     (ma20 / ma120 - 0.9) * 500      needs >= 20 closes
    sentiment    net buying mapped from [-10T, +10T] won onto [0, 100]
    put/call     100 - (ratio - 0.5) * 66.67     ratio 0.5 .. 2.0
    volatility   100 - (vkospi - 10) * 3.33      vkospi 10 .. 40
    safe haven   (yield10y - yield3y + 0.5) * 40 spread -0.5 .. 2.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from sentiment_engines.scoring import ComponentScores, clamp_score
from sentiment_kernel.logging_config import get_logger

logger = get_logger("engines.normalization")

NEUTRAL_SCORE = 50.0

MOMENTUM_SHORT_WINDOW = 20
MOMENTUM_LONG_WINDOW = 120
NET_BUYING_RANGE = Decimal("10000000000000")  # 10 trillion won


@dataclass(frozen=True)
class InvestorFlow:
    """One day of foreign and institutional trading value (won)."""

    foreign_buy: Decimal = Decimal(0)
    foreign_sell: Decimal = Decimal(0)
    institutional_buy: Decimal = Decimal(0)
    institutional_sell: Decimal = Decimal(0)

    @property
    def net(self) -> Decimal:
        return (self.foreign_buy - self.foreign_sell) + (
            self.institutional_buy - self.institutional_sell
        )


@dataclass(frozen=True)
class RawMarketSignals:
    """
    Raw inputs for one date.

    ``closes`` is most-recent-first, up to MOMENTUM_LONG_WINDOW entries.
    ``flows`` is most-recent-first, normally five trading days.
    """

    closes: tuple[Decimal, ...] = ()
    flows: tuple[InvestorFlow, ...] = ()
    put_call_ratio: Decimal | None = None
    vkospi: Decimal | None = None
    yield_3y: Decimal | None = None
    yield_10y: Decimal | None = None


@dataclass(frozen=True)
class NormalizedComponents:
    components: ComponentScores
    missing: frozenset[str] = field(default_factory=frozenset)

    @property
    def complete(self) -> bool:
        return not self.missing


def momentum_score(closes: Sequence[Decimal]) -> float | None:
    if len(closes) < MOMENTUM_SHORT_WINDOW:
        return None
    window = list(closes[:MOMENTUM_LONG_WINDOW])
    ma_short = sum(window[:MOMENTUM_SHORT_WINDOW], Decimal(0)) / MOMENTUM_SHORT_WINDOW
    ma_long = sum(window, Decimal(0)) / len(window)
    if ma_long == 0:
        return None
    return clamp_score((ma_short / ma_long - Decimal("0.9")) * 500)


def investor_sentiment_score(flows: Sequence[InvestorFlow]) -> float | None:
    if not flows:
        return None
    total = sum((flow.net for flow in flows), Decimal(0))
    return clamp_score((total + NET_BUYING_RANGE) * 100 / (NET_BUYING_RANGE * 2))


def put_call_score(ratio: Decimal | None) -> float | None:
    if ratio is None:
        return None
    return clamp_score(100 - (ratio - Decimal("0.5")) * Decimal("66.67"))


def volatility_score(vkospi: Decimal | None) -> float | None:
    if vkospi is None:
        return None
    return clamp_score(100 - (vkospi - 10) * Decimal("3.33"))


def safe_haven_score(
    yield_3y: Decimal | None, yield_10y: Decimal | None,
) -> float | None:
    if not yield_3y or not yield_10y:
        return None
    spread = yield_10y - yield_3y
    return clamp_score((spread + Decimal("0.5")) * 40)


def normalize_signals(signals: RawMarketSignals) -> NormalizedComponents:
    """Normalize raw inputs; missing inputs fall back to NEUTRAL_SCORE."""
    raw = {
        "momentum": momentum_score(signals.closes),
        "sentiment": investor_sentiment_score(signals.flows),
        "put_call": put_call_score(signals.put_call_ratio),
        "volatility": volatility_score(signals.vkospi),
        "safe_haven": safe_haven_score(signals.yield_3y, signals.yield_10y),
    }
    missing = frozenset(name for name, value in raw.items() if value is None)
    if missing:
        logger.debug(
            "normalization_fallback", extra={"missing": sorted(missing)},
        )
    return NormalizedComponents(
        components=ComponentScores(
            **{
                name: NEUTRAL_SCORE if value is None else value
                for name, value in raw.items()
            }
        ),
        missing=missing,
    )
