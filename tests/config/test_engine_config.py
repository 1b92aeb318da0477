"""
Tests for sentiment_config -- YAML loading, validation, and defaults.

Weights are validated at load time: a file whose weights do not sum to 1.0
is rejected before any engine can be built from it.
"""

from pathlib import Path

import pytest

from sentiment_config import DEFAULT_CONFIG_PATH, get_active_config, load_config, parse_config
from sentiment_config.loader import load_yaml_file
from sentiment_config.schema import BatchEngineConfig, EstimationSettings
from sentiment_engines.scoring import DEFAULT_WEIGHTS
from sentiment_kernel.exceptions import ConfigurationError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "engine.yaml"
    path.write_text(text)
    return path


# =============================================================================
# Defaults
# =============================================================================


class TestDefaults:
    def test_packaged_default_loads(self):
        config = get_active_config()
        assert isinstance(config, BatchEngineConfig)
        assert config.weights == DEFAULT_WEIGHTS
        assert config.source_path == DEFAULT_CONFIG_PATH

    def test_packaged_default_keeps_relative_report_dir(self):
        config = get_active_config()
        assert config.reports.output_dir == Path("reports")

    def test_empty_mapping_uses_schema_defaults(self):
        config = parse_config({})
        assert config.worker.poll_interval_seconds == 5.0
        assert config.worker.worker_id is None
        assert config.estimation == EstimationSettings()
        assert config.progress.milestone_step_percent == 10
        assert config.database.url.startswith("sqlite")


# =============================================================================
# Scoring weights
# =============================================================================


class TestWeights:
    def test_custom_weights(self):
        config = parse_config(
            {
                "scoring": {
                    "weights": {
                        "momentum": 0.2,
                        "sentiment": 0.2,
                        "put_call": 0.2,
                        "volatility": 0.2,
                        "safe_haven": 0.2,
                    }
                }
            }
        )
        assert config.weights.as_dict() == {
            "momentum": 0.2,
            "sentiment": 0.2,
            "put_call": 0.2,
            "volatility": 0.2,
            "safe_haven": 0.2,
        }

    def test_weights_summing_to_097_rejected_at_load(self, tmp_path):
        path = _write(
            tmp_path,
            """
scoring:
  weights:
    momentum: 0.25
    sentiment: 0.25
    put_call: 0.20
    volatility: 0.15
    safe_haven: 0.12
""",
        )
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)
        assert exc_info.value.key == "scoring.weights"

    def test_sum_within_tolerance_accepted(self):
        config = parse_config(
            {
                "scoring": {
                    "weights": {
                        "momentum": 0.2505,
                        "sentiment": 0.25,
                        "put_call": 0.20,
                        "volatility": 0.15,
                        "safe_haven": 0.15,
                    }
                }
            }
        )
        assert config.weights.momentum == 0.2505

    def test_missing_weight_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_config({"scoring": {"weights": {"momentum": 1.0}}})

    def test_unknown_weight_rejected(self):
        weights = dict(DEFAULT_WEIGHTS.as_dict(), breadth=0.0)
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"scoring": {"weights": weights}})
        assert exc_info.value.key == "scoring.weights.breadth"

    def test_negative_weight_rejected(self):
        weights = dict(DEFAULT_WEIGHTS.as_dict(), momentum=-0.25, sentiment=0.75)
        with pytest.raises(ConfigurationError):
            parse_config({"scoring": {"weights": weights}})


# =============================================================================
# Other sections
# =============================================================================


class TestSections:
    def test_unknown_section_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"scheduler": {}})
        assert exc_info.value.key == "scheduler"

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"worker": {"threads": 4}})
        assert exc_info.value.key == "worker.threads"

    def test_non_positive_poll_interval_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_config({"worker": {"poll_interval_seconds": 0}})

    def test_milestone_step_over_100_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_config({"progress": {"milestone_step_percent": 150}})

    @pytest.mark.parametrize("step", [0.5, 0, -10, "10", True, 12.5])
    def test_milestone_step_must_be_positive_integer(self, step):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"progress": {"milestone_step_percent": step}})
        assert exc_info.value.key == "progress.milestone_step_percent"

    @pytest.mark.parametrize(
        "name", sorted(vars(EstimationSettings())),
    )
    @pytest.mark.parametrize("value", [0.5, 0, -30, 1.5])
    def test_estimation_must_be_positive_integer(self, name, value):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"estimation": {name: value}})
        assert exc_info.value.key == f"estimation.{name}"

    def test_milestone_step_of_one_accepted(self):
        config = parse_config({"progress": {"milestone_step_percent": 1}})
        assert config.progress.milestone_step_percent == 1

    def test_estimation_override(self):
        config = parse_config({"estimation": {"backfill_seconds_per_day": 12}})
        assert config.estimation.backfill_seconds_per_day == 12
        assert config.estimation.recalculation_seconds == 1800

    def test_report_dir_relative_to_file(self, tmp_path):
        path = _write(tmp_path, "reports:\n  output_dir: out\n")
        config = load_config(path)
        assert config.reports.output_dir == tmp_path / "out"
        assert config.source_path == path


# =============================================================================
# YAML loading
# =============================================================================


class TestLoadYaml:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "scoring: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_yaml_file(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = _write(tmp_path, "- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_yaml_file(path)

    def test_empty_file_is_empty_mapping(self, tmp_path):
        path = _write(tmp_path, "")
        assert load_yaml_file(path) == {}
