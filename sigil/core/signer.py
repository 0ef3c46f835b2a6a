"""Ed25519 signing and verification over file digests.

Files are never handed to Ed25519 directly. Both sides first compute the
SHA-512 digest of the whole file through ``ChunkedHasher`` and sign or
verify those 64 bytes as the message, so arbitrarily large files can be
processed in bounded memory. Sign and verify must agree on the hash and the
byte range or signatures will not validate across implementations.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature

from sigil.core.hasher import DEFAULT_ALGORITHM, ChunkedHasher, Source
from sigil.core.keys import PrivateKey, PublicKey
from sigil.core.logging import operation_scope
from sigil.errors import FormatError

logger = logging.getLogger(__name__)

KEY_HINT_SIZE = 16
SIGNATURE_SIZE = 64
FILE_DIGEST_ALGORITHM = DEFAULT_ALGORITHM


@dataclass(frozen=True, slots=True)
class Signature:
    """Detached Ed25519 signature plus an advisory key-hint.

    ``key_hint`` only narrows down which public key to try. It is never
    evidence of authenticity; only a successful verify is.
    """

    value: bytes
    key_hint: bytes = b""


def key_hint(pk: PublicKey) -> bytes:
    """First 16 bytes of ``sha256(pk)``."""
    return hashlib.sha256(pk.raw).digest()[:KEY_HINT_SIZE]


def _as_public_key(pk: PublicKey | bytes) -> PublicKey:
    if isinstance(pk, PublicKey):
        return pk
    return PublicKey(pk)


def sign_message(sk: PrivateKey, digest: bytes) -> Signature:
    """Sign a precomputed digest, treating it as the Ed25519 message."""
    value = sk.to_cryptography().sign(digest)
    return Signature(value=value, key_hint=key_hint(sk.public_key()))


def verify_message(pk: PublicKey | bytes, digest: bytes, signature: Signature) -> bool:
    """Return whether ``signature`` is valid for ``digest`` under ``pk``.

    A mismatch is ``False``. Only a malformed public key raises.
    """
    public_key = _as_public_key(pk)
    if len(signature.value) != SIGNATURE_SIZE:
        logger.debug("signature has wrong length %d", len(signature.value))
        return False
    try:
        public_key.to_cryptography().verify(signature.value, digest)
    except InvalidSignature:
        return False
    except ValueError as exc:
        raise FormatError(f"invalid public key: {exc}") from exc
    return True


def sign_file(sk: PrivateKey, source: Source, *, hasher: ChunkedHasher | None = None) -> Signature:
    hasher = hasher or ChunkedHasher()
    with operation_scope(operation="sign", path=_describe(source)):
        digest = hasher.digest(source, 0, 0, FILE_DIGEST_ALGORITHM)
        signature = sign_message(sk, digest)
        logger.info("signed with key %s", signature.key_hint.hex())
    return signature


def verify_file(
    pk: PublicKey | bytes,
    source: Source,
    signature: Signature,
    *,
    hasher: ChunkedHasher | None = None,
) -> bool:
    hasher = hasher or ChunkedHasher()
    with operation_scope(operation="verify", path=_describe(source)):
        digest = hasher.digest(source, 0, 0, FILE_DIGEST_ALGORITHM)
        ok = verify_message(pk, digest, signature)
        logger.info("signature %s", "valid" if ok else "INVALID")
    return ok


def is_key_hint_match(signature: Signature, pk: PublicKey | bytes) -> bool:
    """Constant-time check that ``signature`` names ``pk`` as its signer."""
    return hmac.compare_digest(key_hint(_as_public_key(pk)), signature.key_hint)


def select_public_key(signature: Signature, candidates: Iterable[PublicKey]) -> PublicKey | None:
    """Pick the candidate the key-hint points at, or ``None``.

    The result still has to pass ``verify_file``/``verify_message``.
    """
    for pk in candidates:
        if is_key_hint_match(signature, pk):
            return pk
    return None


def _describe(source: Source) -> str | None:
    if isinstance(source, (str, os.PathLike)):
        return os.fspath(source)
    name = getattr(source, "name", None)
    return name if isinstance(name, str) else None


__all__ = [
    "FILE_DIGEST_ALGORITHM",
    "KEY_HINT_SIZE",
    "SIGNATURE_SIZE",
    "Signature",
    "is_key_hint_match",
    "key_hint",
    "select_public_key",
    "sign_file",
    "sign_message",
    "verify_file",
    "verify_message",
]
