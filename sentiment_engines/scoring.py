"""
Module: sentiment_engines.scoring
Responsibility:
    Compute the 0-100 sentiment index for one date from five normalized
    component scores, and classify it into a discrete level.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import sentiment_kernel exceptions and logging.

Invariants enforced:
    - Purity: no clock access, no I/O.
    - ``value = round_half_up(sum(weight_i * component_i))`` clamped to
      [0, 100], computed in Decimal so that results do not depend on binary
      float representation.
    - Weights sum to 1.0 within WEIGHT_SUM_TOLERANCE or ConfigurationError
      is raised on construction (never renormalized).
    - ``level`` is a deterministic function of ``value``.
    - ``confidence`` never influences ``value`` or ``level``.

Failure modes:
    - ConfigurationError when a ScoringWeights instance is built with
      weights that do not sum to 1.0, or with a negative weight.

Usage:
    from sentiment_engines.scoring import ComponentScores, SentimentScorer

    scorer = SentimentScorer()
    score = scorer.score(ComponentScores(80, 70, 60, 50, 40))
    score.value   # 63
    score.level   # SentimentLevel.GREED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Mapping

from sentiment_kernel.exceptions import ConfigurationError
from sentiment_kernel.logging_config import get_logger

logger = get_logger("engines.scoring")

WEIGHT_SUM_TOLERANCE = Decimal("0.001")

# Internal component names, in canonical order.
COMPONENT_NAMES: tuple[str, ...] = (
    "momentum",
    "sentiment",
    "put_call",
    "volatility",
    "safe_haven",
)

# Wire (camelCase) name -> internal name.
WIRE_COMPONENT_NAMES: dict[str, str] = {
    "momentum": "momentum",
    "sentiment": "sentiment",
    "putCall": "put_call",
    "volatility": "volatility",
    "safeHaven": "safe_haven",
}


class SentimentLevel(str, Enum):
    """Discrete classification of a sentiment index value."""

    EXTREME_FEAR = "EXTREME_FEAR"
    FEAR = "FEAR"
    NEUTRAL = "NEUTRAL"
    GREED = "GREED"
    EXTREME_GREED = "EXTREME_GREED"


# Upper bound (inclusive) -> level.  Anything above the last bound is
# EXTREME_GREED.
LEVEL_THRESHOLDS: tuple[tuple[int, SentimentLevel], ...] = (
    (25, SentimentLevel.EXTREME_FEAR),
    (45, SentimentLevel.FEAR),
    (55, SentimentLevel.NEUTRAL),
    (75, SentimentLevel.GREED),
)


def classify_level(value: int) -> SentimentLevel:
    """Map an index value to its level using the inclusive threshold table."""
    for upper, level in LEVEL_THRESHOLDS:
        if value <= upper:
            return level
    return SentimentLevel.EXTREME_GREED


def _to_decimal(value: float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def clamp_score(value: float | int | Decimal) -> float:
    """Clamp a component score into [0, 100]."""
    return float(max(Decimal(0), min(Decimal(100), _to_decimal(value))))


@dataclass(frozen=True)
class ScoringWeights:
    """
    Weights applied to the five components.

    Contract:
        Frozen; validated on construction.
    Guarantees:
        - Every weight is >= 0.
        - The sum is within WEIGHT_SUM_TOLERANCE of 1.0.
    """

    momentum: float = 0.25
    sentiment: float = 0.25
    put_call: float = 0.20
    volatility: float = 0.15
    safe_haven: float = 0.15

    def __post_init__(self) -> None:
        for name in COMPONENT_NAMES:
            if _to_decimal(getattr(self, name)) < 0:
                raise ConfigurationError(
                    f"Scoring weight '{name}' cannot be negative",
                    key=f"scoring.weights.{name}",
                )
        total = self.total()
        if abs(total - Decimal(1)) > WEIGHT_SUM_TOLERANCE:
            raise ConfigurationError(
                f"Scoring weights must sum to 1.0 (+/- {WEIGHT_SUM_TOLERANCE}), "
                f"got {total}",
                key="scoring.weights",
            )

    def total(self) -> Decimal:
        return sum(
            (_to_decimal(getattr(self, name)) for name in COMPONENT_NAMES),
            Decimal(0),
        )

    def as_dict(self) -> dict[str, float]:
        return {name: float(getattr(self, name)) for name in COMPONENT_NAMES}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ScoringWeights:
        """Build from internal (snake_case) or wire (camelCase) keys.

        Raises:
            ConfigurationError: on unknown or missing keys, or a bad sum.
        """
        normalized: dict[str, float] = {}
        for key, raw in data.items():
            name = WIRE_COMPONENT_NAMES.get(key, key)
            if name not in COMPONENT_NAMES:
                raise ConfigurationError(
                    f"Unknown scoring weight '{key}'", key=f"scoring.weights.{key}",
                )
            try:
                normalized[name] = float(raw)
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"Scoring weight '{key}' is not a number: {raw!r}",
                    key=f"scoring.weights.{key}",
                ) from None
        missing = [name for name in COMPONENT_NAMES if name not in normalized]
        if missing:
            raise ConfigurationError(
                f"Missing scoring weights: {missing}", key="scoring.weights",
            )
        return cls(**normalized)


DEFAULT_WEIGHTS = ScoringWeights()


@dataclass(frozen=True)
class ComponentScores:
    """Five normalized sub-scores, each expected in [0, 100]."""

    momentum: float
    sentiment: float
    put_call: float
    volatility: float
    safe_haven: float

    def as_dict(self) -> dict[str, float]:
        return {name: float(getattr(self, name)) for name in COMPONENT_NAMES}

    def clamped(self) -> ComponentScores:
        return ComponentScores(
            **{name: clamp_score(getattr(self, name)) for name in COMPONENT_NAMES}
        )

    def replace(self, **changes: float) -> ComponentScores:
        values = self.as_dict()
        values.update(changes)
        return ComponentScores(**values)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ComponentScores:
        """Build from internal or wire keys.

        Raises:
            KeyError: if any of the five components is missing.
        """
        normalized = {WIRE_COMPONENT_NAMES.get(k, k): v for k, v in data.items()}
        return cls(**{name: float(normalized[name]) for name in COMPONENT_NAMES})


@dataclass(frozen=True)
class SentimentScore:
    """Result of scoring one date."""

    value: int
    level: SentimentLevel
    confidence: int
    components: ComponentScores
    weights: ScoringWeights = field(default=DEFAULT_WEIGHTS)


class SentimentScorer:
    """
    Weighted-sum sentiment index calculator.

    Contract:
        ``score()`` is pure and deterministic for identical inputs.
    Non-goals:
        - Does not fetch market data; callers pass normalized components.
        - Does not persist anything.
    """

    def __init__(self, weights: ScoringWeights | None = None):
        self._weights = weights or DEFAULT_WEIGHTS

    @property
    def weights(self) -> ScoringWeights:
        return self._weights

    def with_weights(self, weights: ScoringWeights) -> SentimentScorer:
        return SentimentScorer(weights)

    def compute_value(self, components: ComponentScores) -> int:
        """Weighted sum, rounded half-up and clamped to [0, 100]."""
        raw = sum(
            (
                _to_decimal(getattr(self._weights, name))
                * _to_decimal(getattr(components, name))
                for name in COMPONENT_NAMES
            ),
            Decimal(0),
        )
        rounded = int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        return max(0, min(100, rounded))

    def score(
        self,
        components: ComponentScores,
        missing: frozenset[str] | tuple[str, ...] = (),
    ) -> SentimentScore:
        """Score one date.

        Args:
            components: The five normalized component scores.
            missing: Names of components that were filled with a neutral
                fallback; they lower ``confidence`` only.
        """
        value = self.compute_value(components)
        confidence = compute_confidence(missing)
        return SentimentScore(
            value=value,
            level=classify_level(value),
            confidence=confidence,
            components=components,
            weights=self._weights,
        )


def compute_confidence(missing: frozenset[str] | tuple[str, ...] = ()) -> int:
    """Share of components backed by real input data, as 0-100."""
    available = len(COMPONENT_NAMES) - len(set(missing) & set(COMPONENT_NAMES))
    ratio = Decimal(available) / Decimal(len(COMPONENT_NAMES)) * 100
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))
