"""Password protection and text encoding for Ed25519 keys.

The private key is stored as ``sk XOR scrypt(sha512(password), salt)``. A
tag ``sha256(salt || keystream)`` is kept next to it so a wrong password is
detected before the XOR result is trusted. The container is not
authenticated: flipping a ciphertext bit yields a different key silently.
The format is kept as-is for compatibility with existing key files.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os
from pathlib import Path

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from sigil.config import SCRYPT_SHA256, KdfParams
from sigil.core.fileio import write_atomic
from sigil.core.keys import Keypair, PrivateKey, PublicKey
from sigil.core.logging import operation_scope
from sigil.core.secure import SecretBuffer, xor_bytes
from sigil.errors import AuthenticationError, FormatError
from sigil.models.records import EncryptedPrivateKeyRecord, PublicKeyRecord

logger = logging.getLogger(__name__)

SALT_SIZE = 32
PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644

Password = str | bytes | bytearray


def _expand_password(password: Password) -> SecretBuffer:
    """Stretch any password, including an empty one, to 64 bytes of KDF input."""
    with SecretBuffer(password) as raw:
        h = hashlib.sha512()
        h.update(raw.data)
        return SecretBuffer(h.digest())


def _derive_keystream(
    expanded: SecretBuffer,
    salt: bytes,
    length: int,
    work_factor: int,
    block_size: int,
    parallelism: int,
) -> SecretBuffer:
    kdf = Scrypt(salt=salt, length=length, n=work_factor, r=block_size, p=parallelism)
    return SecretBuffer(kdf.derive(expanded.data))


def _verify_tag(salt: bytes, keystream: SecretBuffer) -> bytes:
    h = hashlib.sha256()
    h.update(salt)
    h.update(keystream.data)
    return h.digest()


class KeyCodec:
    """Encrypts, decrypts and (de)serializes keys.

    ``kdf`` sets the cost parameters used when encrypting; decryption always
    uses the parameters stored in the record.
    """

    def __init__(self, kdf: KdfParams | None = None) -> None:
        self._kdf = kdf or KdfParams()

    @property
    def kdf(self) -> KdfParams:
        return self._kdf

    def encrypt(
        self,
        sk: PrivateKey,
        password: Password,
        *,
        comment: str = "",
        kdf: KdfParams | None = None,
    ) -> EncryptedPrivateKeyRecord:
        params = kdf or self._kdf
        secret = sk.export_secret()
        salt = os.urandom(SALT_SIZE)

        with secret, _expand_password(password) as expanded:
            keystream = _derive_keystream(
                expanded,
                salt,
                len(secret),
                params.work_factor,
                params.block_size,
                params.parallelism,
            )
            with keystream:
                tag = _verify_tag(salt, keystream)
                esk = bytes(xor_bytes(secret.data, keystream.data))

        return EncryptedPrivateKeyRecord(
            comment=comment,
            esk=esk,
            salt=salt,
            algo=params.algo,
            verify=tag,
            work_factor=params.work_factor,
            block_size=params.block_size,
            parallelism=params.parallelism,
        )

    def decrypt(self, record: EncryptedPrivateKeyRecord, password: Password) -> PrivateKey:
        """Recover the private key; raises ``AuthenticationError`` on a wrong password."""
        if record.algo != SCRYPT_SHA256:
            raise FormatError(f"unsupported private key algorithm: {record.algo!r}")
        if not record.esk:
            raise FormatError("encrypted private key is empty")

        with _expand_password(password) as expanded:
            try:
                keystream = _derive_keystream(
                    expanded,
                    record.salt,
                    len(record.esk),
                    record.work_factor,
                    record.block_size,
                    record.parallelism,
                )
            except ValueError as exc:
                raise FormatError(f"can't derive key: {exc}") from exc

            with keystream:
                if not hmac.compare_digest(record.verify, _verify_tag(record.salt, keystream)):
                    raise AuthenticationError("incorrect password")

                with SecretBuffer.adopt(xor_bytes(record.esk, keystream.data)) as sk:
                    return PrivateKey(sk.data)

    # -- text form --

    def encode_private_key(self, record: EncryptedPrivateKeyRecord, comment: str = "") -> str:
        if comment:
            record = record.model_copy(update={"comment": comment})
        return record.to_yaml()

    def decode_private_key(self, content: str | bytes) -> EncryptedPrivateKeyRecord:
        return EncryptedPrivateKeyRecord.from_yaml(content)

    def encode_public_key(self, pk: PublicKey, comment: str = "") -> str:
        return PublicKeyRecord(comment=comment, pk=pk.raw).to_yaml()

    def decode_public_key(self, content: str | bytes) -> PublicKey:
        record = PublicKeyRecord.from_yaml(content)
        return PublicKey(record.pk)

    # -- files --

    def write_keypair(
        self,
        keypair: Keypair,
        basename: str | os.PathLike[str],
        password: Password,
        comment: str = "",
    ) -> tuple[Path, Path]:
        """Write ``<basename>.pub`` and ``<basename>.key``; returns both paths."""
        base = os.fspath(basename)
        pub_path = Path(f"{base}.pub")
        key_path = Path(f"{base}.key")

        with operation_scope(operation="write-keypair", path=base):
            write_atomic(pub_path, self.encode_public_key(keypair.public, comment).encode("utf-8"), PUBLIC_KEY_MODE)
            record = self.encrypt(keypair.private, password, comment=comment)
            write_atomic(key_path, record.to_yaml().encode("utf-8"), PRIVATE_KEY_MODE)
            logger.info("wrote keypair %s / %s", pub_path, key_path)
        return pub_path, key_path

    def read_public_key(self, path: str | os.PathLike[str]) -> PublicKey:
        with operation_scope(operation="read-public-key", path=os.fspath(path)):
            return self.decode_public_key(Path(path).read_bytes())

    def read_private_key(self, path: str | os.PathLike[str], password: Password) -> PrivateKey:
        with operation_scope(operation="read-private-key", path=os.fspath(path)):
            record = self.decode_private_key(Path(path).read_bytes())
            try:
                return self.decrypt(record, password)
            except AuthenticationError:
                logger.warning("incorrect password for %s", path)
                raise


__all__ = ["KeyCodec", "PRIVATE_KEY_MODE", "PUBLIC_KEY_MODE", "SALT_SIZE"]
