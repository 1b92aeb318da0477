"""
sentiment_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``BatchEngineConfig`` (or pieces of it) by constructor injection.

Invariants enforced:
    - Scoring weights are validated at load time; a file whose weights do
      not sum to 1.0 +/- 1e-3 raises ``ConfigurationError`` and no engine
      is built from it.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ConfigurationError`` -- malformed YAML, unknown keys, bad values.
"""

from __future__ import annotations

from pathlib import Path

from sentiment_config.loader import load_config, parse_config
from sentiment_config.schema import (
    BatchEngineConfig,
    DatabaseSettings,
    EstimationSettings,
    ProgressSettings,
    ReportSettings,
    WorkerSettings,
)
from sentiment_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | None = None) -> BatchEngineConfig:
    """
    Load the active configuration.

    Args:
        path: Override path to a YAML file.  Defaults to the packaged
            ``sets/default.yaml``, whose relative paths resolve against the
            working directory.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If validation fails.
    """
    if path is None:
        config = load_config(DEFAULT_CONFIG_PATH, relative_to_file=False)
    else:
        config = load_config(path)

    _logger.info(
        "config_loaded",
        extra={
            "source": str(config.source_path),
            "weights": config.weights.as_dict(),
            "poll_interval_seconds": config.worker.poll_interval_seconds,
        },
    )
    return config


__all__ = [
    "BatchEngineConfig",
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "EstimationSettings",
    "ProgressSettings",
    "ReportSettings",
    "WorkerSettings",
    "get_active_config",
    "load_config",
    "parse_config",
]
