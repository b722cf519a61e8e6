"""Byte sources consumed by the line reader."""

from __future__ import annotations

import os
import stat
from typing import BinaryIO, Optional, Protocol


class ByteSource(Protocol):
    """Anything that yields raw bytes from a device.

    ``read`` returns the bytes currently available, ``b""`` when the source is
    open but has nothing ready yet, or ``None`` once it is closed. Failures are
    raised as :class:`OSError`.
    """

    def read(self, size: int) -> Optional[bytes]:
        ...


def _stream_descriptor(handle: BinaryIO) -> Optional[int]:
    """Return the descriptor of a FIFO, tty or socket handle, ``None`` otherwise."""
    try:
        fd = handle.fileno()
    except (AttributeError, OSError, ValueError):
        return None
    if stat.S_ISREG(os.fstat(fd).st_mode):
        return None
    return fd


class FileByteSource:
    """Adapts a binary file object (capture file, FIFO, device node, stdin).

    With ``follow`` enabled, end-of-file is treated as "nothing ready yet" so the
    reader keeps polling, like ``tail -f``. Otherwise end-of-file closes the
    stream. The handle is borrowed and never closed here.

    Handles backed by a FIFO, tty or socket are switched to non-blocking mode so
    a read never parks the worker and a stop request is noticed on the next
    poll. Those handles are read through their descriptor, bypassing any
    Python-level buffer. :meth:`release` restores the original mode.
    """

    def __init__(self, handle: BinaryIO, follow: bool = False) -> None:
        self._handle = handle
        self.follow = follow
        self._fd = _stream_descriptor(handle)
        self._was_blocking = False
        if self._fd is not None:
            self._was_blocking = os.get_blocking(self._fd)
            os.set_blocking(self._fd, False)

    @property
    def non_blocking(self) -> bool:
        return self._fd is not None

    def read(self, size: int) -> Optional[bytes]:
        try:
            if self._fd is not None:
                chunk = os.read(self._fd, size)
            else:
                reader = getattr(self._handle, "read1", None) or self._handle.read
                chunk = reader(size)
        except BlockingIOError:
            return b""
        if chunk is None:
            # non-blocking raw handles return None when no data is ready
            return b""
        if not chunk:
            return b"" if self.follow else None
        return chunk

    def release(self) -> None:
        if self._fd is None or not self._was_blocking:
            return
        try:
            os.set_blocking(self._fd, True)
        except OSError:
            # descriptor already closed by its owner
            pass
        self._was_blocking = False
