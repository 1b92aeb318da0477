"""
sentiment_engines -- pure calculation engines (zero I/O).

- scoring: weighted five-component sentiment index and level table
- normalization: raw market inputs -> 0-100 component scores
"""

from sentiment_engines.normalization import (
    InvestorFlow,
    NormalizedComponents,
    RawMarketSignals,
    normalize_signals,
)
from sentiment_engines.scoring import (
    COMPONENT_NAMES,
    DEFAULT_WEIGHTS,
    ComponentScores,
    ScoringWeights,
    SentimentLevel,
    SentimentScore,
    SentimentScorer,
    classify_level,
)

__all__ = [
    "COMPONENT_NAMES",
    "DEFAULT_WEIGHTS",
    "ComponentScores",
    "InvestorFlow",
    "NormalizedComponents",
    "RawMarketSignals",
    "ScoringWeights",
    "SentimentLevel",
    "SentimentScore",
    "SentimentScorer",
    "classify_level",
    "normalize_signals",
]
