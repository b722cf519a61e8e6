from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
from typing import Dict, Iterator, List, Optional

from models.errors import DeviceNotFoundError, KindMismatchError
from models.records import DeviceKind, DeviceRecord, SampleValue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    record: DeviceRecord
    created: bool
    value: SampleValue


class DeviceRegistry:
    """In-memory, insertion-ordered registry holding one record per identifier.

    Every mutation runs under a single lock so the lookup and the insert in
    :meth:`register_or_update` form one atomic find-or-create step.
    """

    def __init__(self) -> None:
        self._records: Dict[str, DeviceRecord] = {}
        self._lock = Lock()

    def register(self, identifier: str, kind: DeviceKind) -> DeviceRecord:
        """Create an empty record, or return the existing one for the same kind."""
        _validate_identifier(identifier)
        with self._lock:
            existing = self._records.get(identifier)
            if existing is not None:
                _check_kind(existing, kind)
                return existing
            record = DeviceRecord(identifier=identifier, kind=kind)
            self._records[identifier] = record

        logger.info(
            "Registered device",
            extra={"device_id": identifier, "kind": kind.label},
        )
        return record

    def register_or_update(
        self, identifier: str, kind: DeviceKind, value: object
    ) -> RegistrationResult:
        _validate_identifier(identifier)
        with self._lock:
            record = self._records.get(identifier)
            created = record is None
            if record is None:
                record = DeviceRecord(identifier=identifier, kind=kind)
                sample = record.add_sample(value)
                self._records[identifier] = record
            else:
                _check_kind(record, kind)
                sample = record.add_sample(value)
            sample_count = len(record.history)

        if created:
            logger.info(
                "Registered device from first sample",
                extra={"device_id": identifier, "kind": kind.label, "value": sample},
            )
        else:
            logger.debug(
                "Appended sample",
                extra={
                    "device_id": identifier,
                    "value": sample,
                    "sample_count": sample_count,
                },
            )
        return RegistrationResult(record=record, created=created, value=sample)

    def append_sample(self, identifier: str, value: object) -> DeviceRecord:
        with self._lock:
            record = self._records.get(identifier)
            if record is None:
                raise DeviceNotFoundError(identifier)
            record.add_sample(value)
        return record

    def find(self, identifier: str) -> Optional[DeviceRecord]:
        with self._lock:
            return self._records.get(identifier)

    def get(self, identifier: str) -> DeviceRecord:
        record = self.find(identifier)
        if record is None:
            raise DeviceNotFoundError(identifier)
        return record

    def records(self) -> List[DeviceRecord]:
        with self._lock:
            return list(self._records.values())

    def snapshot(self) -> List[DeviceRecord]:
        """Return independent copies of all records in registry order."""

        with self._lock:
            return [record.copy() for record in self._records.values()]

    def clear(self) -> int:
        with self._lock:
            released = len(self._records)
            self._records.clear()
        if released:
            logger.info("Released %d device record(s)", released)
        return released

    def __iter__(self) -> Iterator[DeviceRecord]:
        yield from self.records()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._records


def _validate_identifier(identifier: str) -> None:
    if not isinstance(identifier, str) or not identifier:
        raise ValueError("Device identifier must be a non-empty string.")


def _check_kind(record: DeviceRecord, kind: DeviceKind) -> None:
    if record.kind is not kind:
        raise KindMismatchError(record.identifier, record.kind.label, kind.label)


@lru_cache
def build_default_registry() -> DeviceRegistry:
    return DeviceRegistry()
