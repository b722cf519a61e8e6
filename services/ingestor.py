"""Ingestion loop wiring the line reader, the decoder and the registry."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from functools import lru_cache
from threading import Lock
from typing import Optional

from app.schemas import IngestionIssue, IngestionReport, IngestionStatus
from datastore.registry import DeviceRegistry, build_default_registry
from models.errors import DecodeError, KindMismatchError, SampleTypeError, StreamReadError
from models.records import DecodedRecord
from services.aggregator import Aggregator, DeviceSummary
from services.decoder import RecordDecoder
from streams.line_reader import LineReader

logger = logging.getLogger(__name__)


class IngestionService:
    """Feeds decoded telemetry lines into the device registry."""

    def __init__(
        self,
        registry: DeviceRegistry,
        decoder: RecordDecoder,
        aggregator: Aggregator,
    ) -> None:
        self.registry = registry
        self.decoder = decoder
        self.aggregator = aggregator
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ingest")
        self._report = IngestionReport(status=IngestionStatus.idle)
        self._report_lock = Lock()
        self._reader: Optional[LineReader] = None
        self._future: Optional[Future[IngestionReport]] = None

    def ingest_line(self, line: str, line_number: int = 0) -> Optional[DecodedRecord]:
        """Decode one line and register it. Recoverable problems return ``None``."""
        with self._report_lock:
            self._report.lines_read += 1

        try:
            record = self.decoder.decode(line)
        except DecodeError as exc:
            logger.warning(
                "Discarding malformed line",
                extra={"line_number": line_number, "line": line, "reason": exc.reason},
            )
            self._record_issue(line_number, line, exc.reason)
            return None

        try:
            result = self.registry.register_or_update(
                record.identifier, record.kind, record.value
            )
        except (KindMismatchError, SampleTypeError) as exc:
            logger.warning(
                "Rejected sample",
                extra={
                    "line_number": line_number,
                    "device_id": record.identifier,
                    "reason": str(exc),
                },
            )
            self._record_issue(line_number, line, str(exc))
            return None

        with self._report_lock:
            self._report.records_accepted += 1
            if result.created:
                self._report.devices_created += 1
        return record

    def run(self, reader: LineReader) -> IngestionReport:
        """Consume ``reader`` until the stream closes, fails or is stopped."""
        with self._report_lock:
            self._reader = reader
            self._report = IngestionReport(
                status=IngestionStatus.running,
                started_at=datetime.now(timezone.utc),
            )
        logger.info("Ingestion started", extra={"status": IngestionStatus.running.value})

        line_number = 0
        try:
            for line in reader:
                line_number += 1
                self.ingest_line(line, line_number)
        except StreamReadError as exc:
            self._finish(IngestionStatus.failed, reason=str(exc))
            raise

        status = (
            IngestionStatus.stopped if reader.stop_requested else IngestionStatus.completed
        )
        return self._finish(status)

    def start(self, reader: LineReader) -> Future[IngestionReport]:
        """Run the ingestion loop on the background worker."""
        if self._future is not None and not self._future.done():
            raise RuntimeError("Ingestion is already running.")
        with self._report_lock:
            self._reader = reader
        self._future = self.executor.submit(self.run, reader)
        return self._future

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Signal the active reader to stop and wait for the loop to exit.

        Returns ``False`` when the loop is still running after ``timeout``.
        """
        with self._report_lock:
            reader = self._reader
        if reader is not None:
            reader.stop()
        future = self._future
        if future is not None:
            try:
                future.result(timeout=timeout)
            except FutureTimeoutError:
                logger.warning(
                    "Ingestion did not stop in time", extra={"status": self.report().status.value}
                )
                return False
            except StreamReadError:
                # already logged and recorded in the report
                pass
        return True

    def summaries(self) -> list[DeviceSummary]:
        return self.aggregator.summarize_registry(self.registry)

    def report(self) -> IngestionReport:
        with self._report_lock:
            return self._report.model_copy(deep=True)

    def shutdown(self) -> None:
        """Stop ingestion and release the worker during application shutdown."""
        self.stop(timeout=5.0)
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _record_issue(self, line_number: int, line: str, reason: str) -> None:
        with self._report_lock:
            self._report.issues.append(
                IngestionIssue(line_number=line_number, line=line, reason=reason)
            )

    def _finish(self, status: IngestionStatus, reason: Optional[str] = None) -> IngestionReport:
        with self._report_lock:
            self._report.status = status
            self._report.finished_at = datetime.now(timezone.utc)
            if reason is not None:
                self._report.failure_reason = reason
            report = self._report.model_copy(deep=True)

        log = logger.error if status is IngestionStatus.failed else logger.info
        log(
            "Ingestion finished",
            extra={
                "status": status.value,
                "lines_read": report.lines_read,
                "records_accepted": report.records_accepted,
                "reason": reason,
            },
        )
        return report


@lru_cache
def build_default_ingestor() -> IngestionService:
    """Factory that wires the ingestion service with the shared registry."""
    return IngestionService(
        registry=build_default_registry(),
        decoder=RecordDecoder(),
        aggregator=Aggregator(),
    )
