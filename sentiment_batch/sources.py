"""
Market-data sources consumed by the backfill handler.

Contract:
    ``MarketDataSource.components_for(day)`` returns the five normalized
    components for one date, or raises ``DataUnavailableError`` when the
    date cannot be scored.  The handler treats that as a unit failure.

Implementations:
    StaticMarketDataSource       in-memory mapping (tests, CLI fixtures)
    NormalizingMarketDataSource  raw signals -> normalization engine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from sentiment_engines.normalization import RawMarketSignals, normalize_signals
from sentiment_engines.scoring import COMPONENT_NAMES, ComponentScores
from sentiment_kernel.exceptions import ConfigurationError, DataUnavailableError
from sentiment_kernel.logging_config import get_logger

logger = get_logger("batch.sources")


@dataclass(frozen=True)
class ComponentSnapshot:
    """Components for one date plus the names filled with a neutral fallback."""

    components: ComponentScores
    missing: frozenset[str] = field(default_factory=frozenset)


@runtime_checkable
class MarketDataSource(Protocol):
    def components_for(self, day: date) -> ComponentSnapshot: ...


@runtime_checkable
class RawSignalProvider(Protocol):
    def signals_for(self, day: date) -> RawMarketSignals | None: ...


class StaticMarketDataSource:
    """Serves pre-computed components from memory."""

    def __init__(
        self,
        data: Mapping[date, ComponentScores | ComponentSnapshot] | None = None,
    ):
        self._data: dict[date, ComponentSnapshot] = {}
        for day, value in (data or {}).items():
            self.set(day, value)

    def set(self, day: date, value: ComponentScores | ComponentSnapshot) -> None:
        if isinstance(value, ComponentScores):
            value = ComponentSnapshot(components=value)
        self._data[day] = value

    def remove(self, days: Iterable[date]) -> None:
        for day in days:
            self._data.pop(day, None)

    def components_for(self, day: date) -> ComponentSnapshot:
        try:
            return self._data[day]
        except KeyError:
            raise DataUnavailableError(day.isoformat()) from None

    @classmethod
    def from_file(cls, path: Path) -> StaticMarketDataSource:
        """Load ``{YYYY-MM-DD: {momentum: .., sentiment: .., ...}}`` from YAML.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If an entry is malformed.
        """
        from sentiment_config.loader import load_yaml_file

        source = cls()
        for raw_day, raw_components in load_yaml_file(path).items():
            day = raw_day if isinstance(raw_day, date) else _parse_day(raw_day, path)
            if not isinstance(raw_components, Mapping):
                raise ConfigurationError(
                    f"Entry {raw_day} in {path} must be a mapping", key=str(raw_day),
                )
            source.set(day, _snapshot_from_mapping(raw_components, str(raw_day)))
        logger.info(
            "market_data_loaded",
            extra={"path": str(path), "days": len(source._data)},
        )
        return source


def _parse_day(value: Any, path: Path) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ConfigurationError(
            f"Invalid date key {value!r} in {path}", key=str(value),
        ) from None


def _snapshot_from_mapping(data: Mapping[str, Any], key: str) -> ComponentSnapshot:
    try:
        components = ComponentScores.from_mapping(data)
    except KeyError as exc:
        raise ConfigurationError(
            f"Entry {key} is missing component {exc.args[0]!r}", key=key,
        ) from None
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Entry {key} has a non-numeric component", key=key,
        ) from None
    missing = data.get("missing") or ()
    unknown = set(missing) - set(COMPONENT_NAMES)
    if unknown:
        raise ConfigurationError(
            f"Entry {key} lists unknown missing components {sorted(unknown)}",
            key=key,
        )
    return ComponentSnapshot(components=components, missing=frozenset(missing))


class NormalizingMarketDataSource:
    """Normalizes raw per-date signals from a provider.

    A date for which the provider has nothing, or for which every
    component would fall back to neutral, is unavailable.
    """

    def __init__(self, provider: RawSignalProvider):
        self._provider = provider

    def components_for(self, day: date) -> ComponentSnapshot:
        signals = self._provider.signals_for(day)
        if signals is None:
            raise DataUnavailableError(day.isoformat())
        normalized = normalize_signals(signals)
        if len(normalized.missing) == len(COMPONENT_NAMES):
            raise DataUnavailableError(
                day.isoformat(), detail="no usable market signals",
            )
        return ComponentSnapshot(
            components=normalized.components, missing=normalized.missing,
        )
