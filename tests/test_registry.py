"""Unit tests for the in-memory device registry."""

from __future__ import annotations

import threading

import pytest

from datastore.registry import DeviceRegistry
from models.errors import DeviceNotFoundError, KindMismatchError, SampleTypeError
from models.records import DeviceKind


@pytest.fixture()
def registry() -> DeviceRegistry:
    return DeviceRegistry()


def test_first_sample_creates_record(registry: DeviceRegistry) -> None:
    result = registry.register_or_update("TEMP-001", DeviceKind.THERMAL, 25.5)

    assert result.created is True
    assert result.record.identifier == "TEMP-001"
    assert result.record.kind is DeviceKind.THERMAL
    assert list(result.record.history) == [25.5]
    assert len(registry) == 1


def test_samples_keep_arrival_order(registry: DeviceRegistry) -> None:
    for value in (25.5, 20.0, 30.0):
        registry.register_or_update("TEMP-001", DeviceKind.THERMAL, value)

    record = registry.get("TEMP-001")
    assert list(record.history) == [25.5, 20.0, 30.0]


def test_same_identifier_twice_creates_one_record(registry: DeviceRegistry) -> None:
    first = registry.register_or_update("PRES-100", DeviceKind.BAROMETRIC, 100)
    second = registry.register_or_update("PRES-100", DeviceKind.BAROMETRIC, 102)

    assert first.created is True
    assert second.created is False
    assert second.record is first.record
    assert len(registry) == 1


def test_kind_mismatch_leaves_history_untouched(registry: DeviceRegistry) -> None:
    registry.register_or_update("DEV-1", DeviceKind.THERMAL, 21.0)

    with pytest.raises(KindMismatchError) as excinfo:
        registry.register_or_update("DEV-1", DeviceKind.BAROMETRIC, 1013)

    assert excinfo.value.identifier == "DEV-1"
    assert list(registry.get("DEV-1").history) == [21.0]
    assert registry.get("DEV-1").kind is DeviceKind.THERMAL


def test_invalid_first_sample_creates_nothing(registry: DeviceRegistry) -> None:
    with pytest.raises(SampleTypeError):
        registry.register_or_update("PRES-1", DeviceKind.BAROMETRIC, 1.5)

    assert "PRES-1" not in registry


def test_traversal_follows_registration_order(registry: DeviceRegistry) -> None:
    registry.register_or_update("A", DeviceKind.THERMAL, 1.0)
    registry.register_or_update("B", DeviceKind.BAROMETRIC, 2)
    registry.register_or_update("A", DeviceKind.THERMAL, 3.0)

    assert [record.identifier for record in registry] == ["A", "B"]
    # restartable
    assert [record.identifier for record in registry] == ["A", "B"]


def test_visitor_may_append_during_traversal(registry: DeviceRegistry) -> None:
    registry.register_or_update("A", DeviceKind.BAROMETRIC, 1)
    registry.register_or_update("B", DeviceKind.BAROMETRIC, 2)

    for record in registry:
        registry.append_sample(record.identifier, 10)
        registry.register_or_update("C", DeviceKind.BAROMETRIC, 3)

    assert [record.identifier for record in registry] == ["A", "B", "C"]
    assert list(registry.get("A").history) == [1, 10]


def test_find_returns_none_when_missing(registry: DeviceRegistry) -> None:
    assert registry.find("missing") is None
    with pytest.raises(DeviceNotFoundError):
        registry.get("missing")


def test_identifiers_are_case_sensitive(registry: DeviceRegistry) -> None:
    registry.register_or_update("temp-1", DeviceKind.THERMAL, 1.0)
    registry.register_or_update("TEMP-1", DeviceKind.THERMAL, 2.0)

    assert len(registry) == 2


def test_register_without_sample(registry: DeviceRegistry) -> None:
    record = registry.register("TEMP-001", DeviceKind.THERMAL)

    assert record.history.is_empty()
    assert registry.register("TEMP-001", DeviceKind.THERMAL) is record
    with pytest.raises(KindMismatchError):
        registry.register("TEMP-001", DeviceKind.BAROMETRIC)
    assert len(registry) == 1


def test_register_rejects_empty_identifier(registry: DeviceRegistry) -> None:
    with pytest.raises(ValueError):
        registry.register("", DeviceKind.THERMAL)
    with pytest.raises(ValueError):
        registry.register_or_update("", DeviceKind.THERMAL, 1.0)


def test_append_sample_requires_existing_device(registry: DeviceRegistry) -> None:
    with pytest.raises(DeviceNotFoundError):
        registry.append_sample("ghost", 1.0)

    registry.register("PRES-1", DeviceKind.BAROMETRIC)
    record = registry.append_sample("PRES-1", 1013)
    assert list(record.history) == [1013]


def test_snapshot_returns_independent_copies(registry: DeviceRegistry) -> None:
    registry.register_or_update("A", DeviceKind.THERMAL, 1.0)

    snapshot = registry.snapshot()
    snapshot[0].add_sample(2.0)

    assert list(registry.get("A").history) == [1.0]


def test_clear_is_idempotent(registry: DeviceRegistry) -> None:
    registry.register_or_update("A", DeviceKind.THERMAL, 1.0)
    registry.register("B", DeviceKind.BAROMETRIC)

    assert registry.clear() == 2
    assert len(registry) == 0
    assert list(registry) == []
    assert registry.clear() == 0


def test_concurrent_find_or_create_yields_one_record(registry: DeviceRegistry) -> None:
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        for _ in range(50):
            registry.register_or_update("SHARED", DeviceKind.BAROMETRIC, 1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(registry) == 1
    assert len(registry.get("SHARED").history) == 400
