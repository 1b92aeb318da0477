"""
Configuration Loader (``sentiment_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``sentiment_config.schema`` dataclasses.  The single public entry point
for runtime config is ``sentiment_config.get_active_config()``.

Invariants enforced
-------------------
* Scoring weights must sum to 1.0 +/- 1e-3; a violating file is rejected
  with ``ConfigurationError`` at load time and never renormalized.
* Every parse problem surfaces as ``ConfigurationError`` carrying the
  offending key; no silent defaults for malformed values.
* Every parsed object is a frozen dataclass from ``schema.py``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``ConfigurationError``.
* Unknown section or key  -> ``ConfigurationError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from sentiment_config.schema import (
    BatchEngineConfig,
    DatabaseSettings,
    EstimationSettings,
    ProgressSettings,
    ReportSettings,
    WorkerSettings,
)
from sentiment_engines.scoring import DEFAULT_WEIGHTS, ScoringWeights
from sentiment_kernel.exceptions import ConfigurationError

_SECTIONS = frozenset(
    {"scoring", "worker", "estimation", "progress", "reports", "database"}
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationError: if the file is not valid YAML or not a mapping.
    """
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping", key=name)
    return value


def _check_keys(section: dict[str, Any], allowed: set[str], prefix: str) -> None:
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{prefix}': {unknown}", key=f"{prefix}.{unknown[0]}",
        )


def _positive_number(value: Any, key: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be a number", key=key) from None
    if number <= 0:
        raise ConfigurationError(f"'{key}' must be positive, got {value}", key=key)
    return number


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}", key=key)
    if value < 1:
        raise ConfigurationError(f"'{key}' must be >= 1, got {value}", key=key)
    return value


def parse_weights(data: dict[str, Any]) -> ScoringWeights:
    """Parse ``scoring.weights``; raises ConfigurationError on a bad sum."""
    scoring = _section(data, "scoring")
    _check_keys(scoring, {"weights"}, "scoring")
    weights = scoring.get("weights")
    if weights is None:
        return DEFAULT_WEIGHTS
    if not isinstance(weights, dict):
        raise ConfigurationError(
            "'scoring.weights' must be a mapping", key="scoring.weights",
        )
    return ScoringWeights.from_mapping(weights)


def parse_worker(data: dict[str, Any]) -> WorkerSettings:
    section = _section(data, "worker")
    _check_keys(section, {"poll_interval_seconds", "worker_id"}, "worker")
    interval = section.get("poll_interval_seconds", WorkerSettings.poll_interval_seconds)
    worker_id = section.get("worker_id")
    return WorkerSettings(
        poll_interval_seconds=_positive_number(
            interval, "worker.poll_interval_seconds",
        ),
        worker_id=str(worker_id) if worker_id else None,
    )


def parse_estimation(data: dict[str, Any]) -> EstimationSettings:
    section = _section(data, "estimation")
    defaults = EstimationSettings()
    _check_keys(section, set(vars(defaults)), "estimation")
    values = {
        name: _positive_int(section.get(name, default), f"estimation.{name}")
        for name, default in vars(defaults).items()
    }
    return EstimationSettings(**values)


def parse_progress(data: dict[str, Any]) -> ProgressSettings:
    section = _section(data, "progress")
    _check_keys(section, {"milestone_step_percent"}, "progress")
    step = _positive_int(
        section.get("milestone_step_percent", 10), "progress.milestone_step_percent",
    )
    if step > 100:
        raise ConfigurationError(
            "'progress.milestone_step_percent' must be <= 100",
            key="progress.milestone_step_percent",
        )
    return ProgressSettings(milestone_step_percent=step)


def parse_reports(data: dict[str, Any], base_dir: Path | None) -> ReportSettings:
    section = _section(data, "reports")
    _check_keys(section, {"output_dir"}, "reports")
    output_dir = Path(section.get("output_dir", "reports"))
    if not output_dir.is_absolute() and base_dir is not None:
        output_dir = base_dir / output_dir
    return ReportSettings(output_dir=output_dir)


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    section = _section(data, "database")
    _check_keys(section, {"url"}, "database")
    return DatabaseSettings(url=str(section.get("url", DatabaseSettings.url)))


def parse_config(
    data: dict[str, Any],
    source_path: Path | None = None,
    base_dir: Path | None = None,
) -> BatchEngineConfig:
    """
    Parse a configuration mapping into a ``BatchEngineConfig``.

    Relative report directories resolve against ``base_dir`` when given.

    Raises:
        ConfigurationError: on any invalid section, key, or value.
    """
    unknown = sorted(set(data) - _SECTIONS)
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration sections: {unknown}", key=unknown[0],
        )
    return BatchEngineConfig(
        weights=parse_weights(data),
        worker=parse_worker(data),
        estimation=parse_estimation(data),
        progress=parse_progress(data),
        reports=parse_reports(data, base_dir),
        database=parse_database(data),
        source_path=source_path,
    )


def load_config(path: Path, relative_to_file: bool = True) -> BatchEngineConfig:
    """Load and parse a YAML configuration file.

    With ``relative_to_file=False`` relative paths stay relative to the
    working directory (used for the packaged default file).
    """
    return parse_config(
        load_yaml_file(path),
        source_path=path,
        base_dir=path.parent if relative_to_file else None,
    )
