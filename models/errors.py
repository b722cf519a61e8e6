"""Error taxonomy for the telemetry pipeline."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for every error raised by the telemetry core."""


class DecodeError(TelemetryError, ValueError):
    """A line could not be parsed into a record. Callers drop the line and continue."""

    def __init__(self, reason: str, line: str) -> None:
        super().__init__(f"{reason}: {line!r}")
        self.reason = reason
        self.line = line


class KindMismatchError(TelemetryError, ValueError):
    """An identifier was reused with a different device kind."""

    def __init__(self, identifier: str, existing: object, requested: object) -> None:
        super().__init__(
            f"Device {identifier!r} is registered as {existing}, not {requested}."
        )
        self.identifier = identifier
        self.existing = existing
        self.requested = requested


class DeviceNotFoundError(TelemetryError, KeyError):

    def __init__(self, identifier: str) -> None:
        super().__init__(identifier)
        self.identifier = identifier

    def __str__(self) -> str:
        return f"Device {self.identifier!r} not found."


class SampleTypeError(TelemetryError, TypeError):
    """A sample does not match the numeric representation of its device kind."""


class EmptyHistoryError(TelemetryError, ValueError):
    """Aggregation was requested over a history without samples."""


class StreamReadError(TelemetryError, OSError):
    """The underlying byte source failed. Fatal to the ingestion loop."""
