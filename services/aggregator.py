"""Aggregation strategies for device sample histories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from models.errors import EmptyHistoryError
from models.records import DeviceKind, DeviceRecord, SampleHistory, SampleValue

logger = logging.getLogger(__name__)


class AggregationStrategy(Protocol):
    """Reduces a non-empty sample history to one scalar."""

    name: str

    def summarize(self, history: SampleHistory[SampleValue]) -> SampleValue:
        ...


def _require_samples(history: SampleHistory[SampleValue]) -> None:
    if history.is_empty():
        raise EmptyHistoryError("Cannot summarize an empty sample history.")


class ThermalAggregator:
    """Lowest temperature seen."""

    name = "minimum"

    def summarize(self, history: SampleHistory[SampleValue]) -> float:
        _require_samples(history)
        return min(history)


class BarometricAggregator:
    """Arithmetic mean of integral pressure samples, always fractional."""

    name = "mean"

    def summarize(self, history: SampleHistory[SampleValue]) -> float:
        _require_samples(history)
        total = 0
        for value in history:
            total += value
        return total / len(history)


_STRATEGIES: Dict[DeviceKind, AggregationStrategy] = {
    DeviceKind.THERMAL: ThermalAggregator(),
    DeviceKind.BAROMETRIC: BarometricAggregator(),
}


def strategy_for(kind: DeviceKind) -> AggregationStrategy:
    return _STRATEGIES[kind]


@dataclass
class DeviceSummary:
    """Aggregate computed for a single device."""

    identifier: str
    kind: DeviceKind
    sample_count: int
    aggregation: str
    value: Optional[SampleValue] = None


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def summarize_record(self, record: DeviceRecord) -> DeviceSummary:
        strategy = strategy_for(record.kind)
        summary = DeviceSummary(
            identifier=record.identifier,
            kind=record.kind,
            sample_count=len(record.history),
            aggregation=strategy.name,
        )
        if record.history.is_empty():
            logger.info(
                "No samples to summarize",
                extra={"device_id": record.identifier, "kind": record.kind.label},
            )
            return summary

        summary.value = strategy.summarize(record.history)
        return summary

    def summarize_registry(self, records: Iterable[DeviceRecord]) -> List[DeviceSummary]:
        return [self.summarize_record(record) for record in records]
