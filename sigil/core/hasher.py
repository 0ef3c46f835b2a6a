"""Streaming file digests over bounded memory windows.

Files of arbitrary size are fed to a single ``hashlib`` state one window at a
time. Windowing only bounds peak memory: the result is bit-identical to
hashing the same bytes in one pass.
"""

from __future__ import annotations

import hashlib
import io
import logging
import mmap
import os
from collections.abc import Callable, Iterator
from contextlib import ExitStack
from typing import BinaryIO, Protocol

from sigil.errors import RangeError

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 1 << 30
DEFAULT_ALGORITHM = "sha512"

# Large enough to amortize syscalls, small enough that the buffered reader
# never holds more than one window plus this much.
_READ_CHUNK = 8 << 20

Source = str | os.PathLike[str] | BinaryIO


class WindowReader(Protocol):
    """Yields consecutive views over ``[offset, offset + length)``.

    Each yielded view is only valid until the next one is requested.
    """

    def windows(self, offset: int, length: int, window_size: int) -> Iterator[memoryview | bytes]: ...


class MmapWindowReader:
    """Maps one window at a time and unmaps it before mapping the next."""

    def __init__(self, fileobj: BinaryIO) -> None:
        self._fd = fileobj.fileno()

    def windows(self, offset: int, length: int, window_size: int) -> Iterator[memoryview]:
        remaining = length
        while remaining > 0:
            n = min(window_size, remaining)
            # mmap offsets must be aligned to the allocation granularity
            skew = offset % mmap.ALLOCATIONGRANULARITY
            mem = mmap.mmap(self._fd, n + skew, access=mmap.ACCESS_READ, offset=offset - skew)
            view = memoryview(mem)
            window = view[skew : skew + n]
            try:
                yield window
            finally:
                # both views must be released or close() sees exported pointers
                window.release()
                view.release()
                mem.close()

            remaining -= n
            offset += n


class BufferedWindowReader:
    """Sequential seek/read fallback for sources without a mappable descriptor."""

    def __init__(self, fileobj: BinaryIO) -> None:
        self._fileobj = fileobj

    def windows(self, offset: int, length: int, window_size: int) -> Iterator[bytes]:
        self._fileobj.seek(offset)
        remaining = length
        while remaining > 0:
            n = min(window_size, remaining)
            window = self._read_exactly(n)
            yield window
            remaining -= n

    def _read_exactly(self, n: int) -> bytes:
        parts: list[bytes] = []
        want = n
        while want > 0:
            chunk = self._fileobj.read(min(want, _READ_CHUNK))
            if not chunk:
                raise OSError(f"unexpected end of file: wanted {n} bytes, got {n - want}")
            parts.append(chunk)
            want -= len(chunk)
        return b"".join(parts)


ReaderFactory = Callable[[BinaryIO], WindowReader]


def default_reader(fileobj: BinaryIO) -> WindowReader:
    """Prefer mmap when the source has a real file descriptor."""
    try:
        fileobj.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation):
        return BufferedWindowReader(fileobj)
    return MmapWindowReader(fileobj)


def _source_size(fileobj: BinaryIO) -> int:
    try:
        return os.fstat(fileobj.fileno()).st_size
    except (AttributeError, OSError, io.UnsupportedOperation):
        pos = fileobj.tell()
        size = fileobj.seek(0, io.SEEK_END)
        fileobj.seek(pos)
        return size


class ChunkedHasher:
    """Computes digests of byte ranges in fixed-size windows."""

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        reader_factory: ReaderFactory = default_reader,
    ) -> None:
        if window_size < 1:
            raise ValueError("window_size must be positive")
        self._window_size = window_size
        self._reader_factory = reader_factory

    @property
    def window_size(self) -> int:
        return self._window_size

    def digest(
        self,
        source: Source,
        offset: int = 0,
        length: int = 0,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> bytes:
        """Return the ``algorithm`` digest of ``length`` bytes at ``offset``.

        ``length == 0`` means everything from ``offset`` to the end. An
        empty source digests as empty input when ``offset`` is zero.
        """
        if offset < 0 or length < 0:
            raise RangeError(f"negative range (offset {offset} length {length})")

        h = hashlib.new(algorithm)
        with ExitStack() as stack:
            if isinstance(source, (str, os.PathLike)):
                fileobj: BinaryIO = stack.enter_context(open(source, "rb"))  # noqa: SIM115
            else:
                fileobj = source

            size = _source_size(fileobj)
            if size == 0 and offset == 0 and length == 0:
                return h.digest()
            if offset >= size:
                raise RangeError(f"offset {offset} is outside source size {size}")

            if length == 0:
                length = size - offset
            elif offset + length > size:
                raise RangeError(f"range {offset}+{length} exceeds source size {size}")

            reader = self._reader_factory(fileobj)
            windows = 0
            for window in reader.windows(offset, length, self._window_size):
                h.update(window)
                windows += 1

        logger.debug("hashed %d bytes at offset %d in %d window(s) with %s", length, offset, windows, algorithm)
        return h.digest()


def file_digest(
    source: Source,
    algorithm: str = DEFAULT_ALGORITHM,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> bytes:
    """Whole-source digest, the form signing and verification use."""
    return ChunkedHasher(window_size=window_size).digest(source, 0, 0, algorithm)


__all__ = [
    "DEFAULT_ALGORITHM",
    "DEFAULT_WINDOW_SIZE",
    "BufferedWindowReader",
    "ChunkedHasher",
    "MmapWindowReader",
    "WindowReader",
    "default_reader",
    "file_digest",
]
