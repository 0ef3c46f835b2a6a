"""Core module: key types, codecs, hashing and signing."""

from sigil.core.hasher import ChunkedHasher, file_digest
from sigil.core.key_codec import KeyCodec
from sigil.core.keys import Keypair, PrivateKey, PublicKey, generate_keypair
from sigil.core.signature_codec import decode_signature, encode_signature
from sigil.core.signer import (
    Signature,
    is_key_hint_match,
    select_public_key,
    sign_file,
    sign_message,
    verify_file,
    verify_message,
)

__all__ = [
    "ChunkedHasher",
    "KeyCodec",
    "Keypair",
    "PrivateKey",
    "PublicKey",
    "Signature",
    "decode_signature",
    "encode_signature",
    "file_digest",
    "generate_keypair",
    "is_key_hint_match",
    "select_public_key",
    "sign_file",
    "sign_message",
    "verify_file",
    "verify_message",
]
