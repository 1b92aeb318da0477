"""
BatchEngineConfig schema.

Typed, frozen view of the YAML configuration.  The loader parses YAML into
these types; services receive them through constructor injection and never
read files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from sentiment_engines.scoring import DEFAULT_WEIGHTS, ScoringWeights


@dataclass(frozen=True)
class WorkerSettings:
    poll_interval_seconds: float = 5.0
    worker_id: str | None = None


@dataclass(frozen=True)
class EstimationSettings:
    """Seconds used to estimate job duration at submission time."""

    backfill_seconds_per_day: int = 30
    backfill_default_seconds: int = 3600
    recalculation_seconds: int = 1800
    default_seconds: int = 600


@dataclass(frozen=True)
class ProgressSettings:
    milestone_step_percent: int = 10


@dataclass(frozen=True)
class ReportSettings:
    output_dir: Path = Path("reports")


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///sentiment_batch.db"


@dataclass(frozen=True)
class BatchEngineConfig:
    """Complete runtime configuration for one engine deployment."""

    weights: ScoringWeights = DEFAULT_WEIGHTS
    worker: WorkerSettings = field(default_factory=WorkerSettings)
    estimation: EstimationSettings = field(default_factory=EstimationSettings)
    progress: ProgressSettings = field(default_factory=ProgressSettings)
    reports: ReportSettings = field(default_factory=ReportSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    source_path: Path | None = None
