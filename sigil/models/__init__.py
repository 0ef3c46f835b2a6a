from __future__ import annotations

from sigil.models.records import (
    Base64Bytes,
    EncryptedPrivateKeyRecord,
    PublicKeyRecord,
    SignatureRecord,
    TextRecord,
)

__all__ = [
    "Base64Bytes",
    "EncryptedPrivateKeyRecord",
    "PublicKeyRecord",
    "SignatureRecord",
    "TextRecord",
]
