"""Ed25519 key types.

A private key is kept in the 64-byte ``seed || public`` layout used by the
on-disk format. The public half is never handed out as a view into the
secret buffer: ``PrivateKey.public_key()`` recomputes it from the seed.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from types import TracebackType

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from sigil.core.secure import SecretBuffer
from sigil.errors import FormatError

logger = logging.getLogger(__name__)

SEED_SIZE = 32
PUBLIC_KEY_SIZE = 32
PRIVATE_KEY_SIZE = SEED_SIZE + PUBLIC_KEY_SIZE


def _raw_public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


@dataclass(frozen=True, slots=True)
class PublicKey:
    """Immutable raw Ed25519 public key."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, bytes):
            object.__setattr__(self, "raw", bytes(self.raw))
        if len(self.raw) == 0:
            raise FormatError("public key data is empty")
        if len(self.raw) != PUBLIC_KEY_SIZE:
            raise FormatError(f"public key must be {PUBLIC_KEY_SIZE} bytes, got {len(self.raw)}")

    def to_cryptography(self) -> Ed25519PublicKey:
        return Ed25519PublicKey.from_public_bytes(self.raw)

    def __repr__(self) -> str:
        return f"PublicKey({self.raw.hex()})"


class PrivateKey:
    """Owns the secret bytes; read-only after construction except ``wipe()``."""

    __slots__ = ("_sk",)

    def __init__(self, sk: bytes | bytearray) -> None:
        if len(sk) != PRIVATE_KEY_SIZE:
            raise FormatError(f"private key must be {PRIVATE_KEY_SIZE} bytes, got {len(sk)}")
        self._sk = bytearray(sk)

    @classmethod
    def from_seed(cls, seed: bytes) -> PrivateKey:
        if len(seed) != SEED_SIZE:
            raise FormatError(f"seed must be {SEED_SIZE} bytes, got {len(seed)}")
        derived = _raw_public_bytes(Ed25519PrivateKey.from_private_bytes(seed).public_key())
        return cls(seed + derived)

    def export_secret(self) -> SecretBuffer:
        """Wipeable copy of the 64-byte secret, for encryption only."""
        return SecretBuffer.adopt(bytearray(self._sk))

    def public_key(self) -> PublicKey:
        return PublicKey(_raw_public_bytes(self.to_cryptography().public_key()))

    def to_cryptography(self) -> Ed25519PrivateKey:
        if not any(self._sk):
            raise ValueError("private key has been wiped")
        return Ed25519PrivateKey.from_private_bytes(bytes(self._sk[:SEED_SIZE]))

    def wipe(self) -> None:
        for i in range(len(self._sk)):
            self._sk[i] = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return hmac.compare_digest(bytes(self._sk), bytes(other._sk))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return "PrivateKey(<redacted>)"

    def __enter__(self) -> PrivateKey:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.wipe()


@dataclass(slots=True)
class Keypair:
    private: PrivateKey
    public: PublicKey

    @classmethod
    def generate(cls) -> Keypair:
        return generate_keypair()


def generate_keypair() -> Keypair:
    """Create a fresh Ed25519 keypair from the OS CSPRNG."""
    private_key = Ed25519PrivateKey.generate()
    seed = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public = PublicKey(_raw_public_bytes(private_key.public_key()))
    logger.info("generated Ed25519 keypair")
    return Keypair(private=PrivateKey(seed + public.raw), public=public)


__all__ = [
    "PRIVATE_KEY_SIZE",
    "PUBLIC_KEY_SIZE",
    "SEED_SIZE",
    "Keypair",
    "PrivateKey",
    "PublicKey",
    "generate_keypair",
]
