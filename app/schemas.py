"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt

from models.records import DeviceKind

if TYPE_CHECKING:
    from models.records import DeviceRecord
    from services.aggregator import DeviceSummary


class IngestionStatus(str, Enum):
    """Ingestion loop lifecycle states exposed via the API."""

    idle = "idle"
    running = "running"
    completed = "completed"
    stopped = "stopped"
    failed = "failed"


class DeviceRegistration(BaseModel):
    """Request body for registering a device without an initial sample."""

    identifier: str = Field(..., min_length=1)
    kind: DeviceKind


class SampleSubmission(BaseModel):
    value: Union[StrictInt, StrictFloat]


class DeviceSnapshot(BaseModel):
    """A device and its full sample history."""

    identifier: str
    kind: DeviceKind
    unit: str
    sample_count: int = Field(..., ge=0)
    samples: List[Union[StrictInt, StrictFloat]] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: "DeviceRecord") -> "DeviceSnapshot":
        samples = list(record.history.snapshot())
        return cls(
            identifier=record.identifier,
            kind=record.kind,
            unit=record.kind.unit,
            sample_count=len(samples),
            samples=samples,
        )


class DeviceSummaryOut(BaseModel):
    """Aggregate for one device. ``value`` is null when no samples exist."""

    identifier: str
    kind: DeviceKind
    unit: str
    sample_count: int = Field(..., ge=0)
    aggregation: str = Field(..., description="Aggregation rule applied to the history.")
    value: Optional[float] = None

    @classmethod
    def from_summary(cls, summary: "DeviceSummary") -> "DeviceSummaryOut":
        return cls(
            identifier=summary.identifier,
            kind=summary.kind,
            unit=summary.kind.unit,
            sample_count=summary.sample_count,
            aggregation=summary.aggregation,
            value=summary.value,
        )


class IngestionIssue(BaseModel):
    """A line that was discarded during ingestion."""

    line_number: int = Field(..., ge=0)
    line: str
    reason: str


class IngestionReport(BaseModel):
    """Progress and outcome of the ingestion loop."""

    status: IngestionStatus
    lines_read: int = Field(default=0, ge=0)
    records_accepted: int = Field(default=0, ge=0)
    devices_created: int = Field(default=0, ge=0)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    issues: List[IngestionIssue] = Field(default_factory=list)
