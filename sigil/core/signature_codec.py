from __future__ import annotations

import logging
import os
from pathlib import Path

from sigil.core.fileio import write_atomic
from sigil.core.signer import Signature
from sigil.models.records import SignatureRecord

logger = logging.getLogger(__name__)

SIGNATURE_MODE = 0o644


def encode_signature(signature: Signature, comment: str = "") -> str:
    """Render a signature as a YAML record with ``comment``/``pkhash``/``signature``."""
    record = SignatureRecord(comment=comment, pkhash=signature.key_hint, signature=signature.value)
    return record.to_yaml()


def decode_signature(content: str | bytes) -> Signature:
    """Parse a signature record; raises ``FormatError`` if it is malformed."""
    record = SignatureRecord.from_yaml(content)
    return Signature(value=record.signature, key_hint=record.pkhash)


def write_signature(path: str | os.PathLike[str], signature: Signature, comment: str = "") -> None:
    write_atomic(path, encode_signature(signature, comment).encode("utf-8"), SIGNATURE_MODE)
    logger.info("wrote signature %s", path)


def read_signature(path: str | os.PathLike[str]) -> Signature:
    return decode_signature(Path(path).read_bytes())


__all__ = [
    "SIGNATURE_MODE",
    "decode_signature",
    "encode_signature",
    "read_signature",
    "write_signature",
]
