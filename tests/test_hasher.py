"""Tests for windowed file digests.

The window size only bounds memory; every configuration must agree with a
plain single-pass ``hashlib`` digest of the same bytes.
"""

from __future__ import annotations

import hashlib
import io
import mmap
from collections.abc import Callable
from pathlib import Path

import pytest
from sigil.core.hasher import (
    BufferedWindowReader,
    ChunkedHasher,
    MmapWindowReader,
    default_reader,
    file_digest,
)
from sigil.errors import RangeError

WINDOW = mmap.ALLOCATIONGRANULARITY


class _CountingReader:
    """Wraps a reader and records the size of every window it hands out."""

    def __init__(self, inner: BufferedWindowReader | MmapWindowReader) -> None:
        self._inner = inner
        self.sizes: list[int] = []

    def windows(self, offset: int, length: int, window_size: int):  # type: ignore[no-untyped-def]
        for window in self._inner.windows(offset, length, window_size):
            self.sizes.append(len(window))
            yield window


class TestChunkedHasher:
    @pytest.mark.parametrize("reader", [MmapWindowReader, BufferedWindowReader])
    def test_two_windows_plus_one_matches_single_pass(
        self,
        random_file: Callable[..., Path],
        reader: type,
    ) -> None:
        path = random_file(2 * WINDOW + 1)
        expected = hashlib.sha512(path.read_bytes()).digest()

        hasher = ChunkedHasher(window_size=WINDOW, reader_factory=reader)
        assert hasher.digest(path) == expected

    def test_windows_are_bounded(self, random_file: Callable[..., Path]) -> None:
        path = random_file(2 * WINDOW + 1)
        readers: list[_CountingReader] = []

        def factory(fileobj):  # type: ignore[no-untyped-def]
            readers.append(_CountingReader(BufferedWindowReader(fileobj)))
            return readers[-1]

        ChunkedHasher(window_size=WINDOW, reader_factory=factory).digest(path)
        assert readers[0].sizes == [WINDOW, WINDOW, 1]

    def test_unaligned_offset_with_mmap(self, random_file: Callable[..., Path]) -> None:
        path = random_file(3 * WINDOW)
        data = path.read_bytes()
        offset, length = 1234, WINDOW + 17

        hasher = ChunkedHasher(window_size=WINDOW, reader_factory=MmapWindowReader)
        digest = hasher.digest(path, offset, length, "sha256")
        assert digest == hashlib.sha256(data[offset : offset + length]).digest()

    def test_zero_length_means_rest_of_source(self, random_file: Callable[..., Path]) -> None:
        path = random_file(5000)
        data = path.read_bytes()
        assert ChunkedHasher().digest(path, 100) == hashlib.sha512(data[100:]).digest()

    def test_accepts_open_file_object(self, random_file: Callable[..., Path]) -> None:
        path = random_file(4096)
        with path.open("rb") as fh:
            digest = ChunkedHasher().digest(fh)
        assert digest == hashlib.sha512(path.read_bytes()).digest()

    def test_in_memory_source_uses_buffered_reader(self) -> None:
        data = b"x" * 10_000
        source = io.BytesIO(data)
        assert isinstance(default_reader(source), BufferedWindowReader)
        assert ChunkedHasher(window_size=999).digest(source) == hashlib.sha512(data).digest()

    def test_offset_at_end_raises(self, random_file: Callable[..., Path]) -> None:
        path = random_file(100)
        with pytest.raises(RangeError):
            ChunkedHasher().digest(path, 100)

    def test_offset_beyond_end_raises(self, random_file: Callable[..., Path]) -> None:
        path = random_file(100)
        with pytest.raises(RangeError):
            ChunkedHasher().digest(path, 500)

    def test_length_past_end_raises(self, random_file: Callable[..., Path]) -> None:
        path = random_file(100)
        with pytest.raises(RangeError):
            ChunkedHasher().digest(path, 50, 51)

    def test_empty_file_digests_as_empty_input(self, tmp_path: Path) -> None:
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert file_digest(path) == hashlib.sha512(b"").digest()

    def test_missing_file_raises_oserror(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            file_digest(tmp_path / "nope")

    def test_unknown_algorithm_raises(self, random_file: Callable[..., Path]) -> None:
        with pytest.raises(ValueError):
            ChunkedHasher().digest(random_file(10), algorithm="not-a-hash")

    def test_invalid_window_size(self) -> None:
        with pytest.raises(ValueError):
            ChunkedHasher(window_size=0)
