"""Line framing over an unreliable byte stream."""

from __future__ import annotations

import logging
from enum import Enum
from threading import Event
from typing import Iterable, Iterator, Optional, Sequence

from models.errors import StreamReadError
from settings import DEFAULT_BANNER_MARKERS, DEFAULT_CHUNK_SIZE, DEFAULT_POLL_INTERVAL
from streams.sources import ByteSource

logger = logging.getLogger(__name__)

_TERMINATORS = frozenset(b"\r\n")


class ReaderState(str, Enum):
    idle = "idle"
    accumulating = "accumulating"
    line_ready = "line_ready"
    stream_closed = "stream_closed"
    read_error = "read_error"
    stopped = "stopped"


class LineReader:
    """Turns a :class:`ByteSource` into decoded, banner-filtered text lines.

    Bytes are buffered until ``\\n`` or ``\\r``. Runs of terminators collapse,
    so no empty line is ever produced. When the source has nothing ready the
    reader waits ``poll_interval`` seconds on its stop event and polls again;
    :meth:`stop` interrupts that wait and ends iteration.
    """

    def __init__(
        self,
        source: ByteSource,
        banner_markers: Iterable[str] = DEFAULT_BANNER_MARKERS,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        stop_event: Optional[Event] = None,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive.")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive.")
        self._source = source
        self.banner_markers: Sequence[str] = tuple(m for m in banner_markers if m)
        self.poll_interval = poll_interval
        self.chunk_size = chunk_size
        self._stop_event = stop_event or Event()
        self._buffer = bytearray()
        self._pending = bytearray()
        self._state = ReaderState.idle
        self.lines_emitted = 0
        self.banners_dropped = 0

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._state in (
            ReaderState.stream_closed,
            ReaderState.read_error,
            ReaderState.stopped,
        )

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def read_line(self) -> Optional[str]:
        """Return the next data line, or ``None`` once the stream is closed or stopped."""
        while True:
            raw = self._next_raw_line()
            if raw is None:
                return None
            line = raw.decode("ascii", errors="replace").strip()
            if not line:
                continue
            if self._is_banner(line):
                self.banners_dropped += 1
                logger.debug("Dropped banner line", extra={"line": line})
                continue
            self.lines_emitted += 1
            return line

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.read_line()
            if line is None:
                return
            yield line

    def _is_banner(self, line: str) -> bool:
        return any(marker in line for marker in self.banner_markers)

    def _next_raw_line(self) -> Optional[bytes]:
        if self.finished:
            return None

        while True:
            if self._stop_event.is_set():
                self._state = ReaderState.stopped
                return None

            line = self._take_line()
            if line is not None:
                return line

            try:
                chunk = self._source.read(self.chunk_size)
            except OSError as exc:
                self._state = ReaderState.read_error
                logger.error("Byte source read failed", extra={"reason": str(exc)})
                raise StreamReadError(f"Byte source read failed: {exc}") from exc

            if chunk is None:
                self._state = ReaderState.stream_closed
                tail = bytes(self._buffer)
                self._buffer.clear()
                return tail or None

            if not chunk:
                self._stop_event.wait(self.poll_interval)
                continue

            self._pending.extend(chunk)

    def _take_line(self) -> Optional[bytes]:
        """Consume pending bytes until one complete, non-empty line is framed."""
        consumed = 0
        line: Optional[bytes] = None
        for byte in self._pending:
            consumed += 1
            if byte in _TERMINATORS:
                if self._buffer:
                    line = bytes(self._buffer)
                    self._buffer.clear()
                    break
                continue
            self._buffer.append(byte)
        del self._pending[:consumed]

        if line is not None:
            self._state = ReaderState.line_ready
            return line
        self._state = ReaderState.accumulating if self._buffer else ReaderState.idle
        return None
