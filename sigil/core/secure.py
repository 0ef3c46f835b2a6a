"""Zeroable buffers for password material and keystreams."""

from __future__ import annotations

from types import TracebackType


class SecretBuffer:
    """A ``bytearray`` that is overwritten with zeros when released.

    Python ``str`` and ``bytes`` are immutable, so anything that must be
    scrubbed is copied into one of these as early as possible and used
    inside a ``with`` block.
    """

    __slots__ = ("_buf",)

    def __init__(self, data: bytes | bytearray | memoryview | str = b"") -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buf = bytearray(data)

    @classmethod
    def adopt(cls, buf: bytearray) -> SecretBuffer:
        """Take ownership of ``buf`` without copying; it is zeroed on wipe."""
        secret = cls()
        secret._buf = buf
        return secret

    @property
    def data(self) -> bytearray:
        return self._buf

    def __len__(self) -> int:
        return len(self._buf)

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def __repr__(self) -> str:
        return f"SecretBuffer(<{len(self._buf)} bytes>)"

    def is_wiped(self) -> bool:
        return not any(self._buf)

    def wipe(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0

    def __enter__(self) -> SecretBuffer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.wipe()


def xor_bytes(left: bytes | bytearray, right: bytes | bytearray) -> bytearray:
    """Byte-wise XOR of two equal-length buffers."""
    if len(left) != len(right):
        raise ValueError(f"length mismatch: {len(left)} != {len(right)}")
    return bytearray(a ^ b for a, b in zip(left, right, strict=True))


__all__ = ["SecretBuffer", "xor_bytes"]
