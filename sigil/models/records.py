"""Text record formats for keys and signatures.

Each record is a flat YAML mapping. Field names (including the single-letter
scrypt cost keys ``Z``, ``r`` and ``p``) are a compatibility contract with
files written by other implementations and must not change.
"""

from __future__ import annotations

import base64
from binascii import Error as BinasciiError
from typing import Annotated, Any, ClassVar, TypeVar

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    ValidationError,
)

from sigil.config import SCRYPT_SHA256
from sigil.errors import FormatError


def _validate_base64_bytes(value: object) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        try:
            return base64.b64decode(value.encode("ascii"), validate=True)
        except (BinasciiError, UnicodeEncodeError) as exc:
            raise ValueError("invalid base64 data") from exc
    raise ValueError("expected bytes or a base64 string")


def _serialize_base64_bytes(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


Base64Bytes = Annotated[
    bytes,
    PlainValidator(_validate_base64_bytes),
    PlainSerializer(_serialize_base64_bytes, return_type=str, when_used="json"),
]

_R = TypeVar("_R", bound="TextRecord")


class TextRecord(BaseModel):
    """Common YAML load/dump for the record types."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    comment: str = ""

    # Optional fields dropped from the output when empty
    omit_if_empty: ClassVar[tuple[str, ...]] = ("comment",)

    def to_yaml(self) -> str:
        data: dict[str, Any] = self.model_dump(mode="json", by_alias=True)
        for key in self.omit_if_empty:
            if not data.get(key):
                data.pop(key, None)
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)

    @classmethod
    def from_yaml(cls: type[_R], content: str | bytes) -> _R:
        kind = cls.__name__
        try:
            parsed: object = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise FormatError(f"can't parse YAML in {kind}: {exc}") from exc

        if not isinstance(parsed, dict):
            raise FormatError(f"{kind} YAML must decode to a mapping")
        if parsed.get("comment") is None:
            parsed.pop("comment", None)

        try:
            return cls.model_validate(parsed)
        except ValidationError as exc:
            raise FormatError(f"invalid {kind}: {exc}") from exc


class PublicKeyRecord(TextRecord):
    pk: Base64Bytes


class EncryptedPrivateKeyRecord(TextRecord):
    """Password-encrypted private key as stored in ``<name>.key``.

    ``esk`` is the key XORed with an scrypt keystream of the same length;
    ``verify`` is ``sha256(salt || keystream)`` and only proves the password
    was right, not that ``esk`` is intact.
    """

    esk: Base64Bytes
    salt: Base64Bytes
    algo: str = SCRYPT_SHA256
    verify: Base64Bytes
    work_factor: int = Field(alias="Z", gt=0)
    block_size: int = Field(alias="r", gt=0)
    parallelism: int = Field(alias="p", gt=0)


class SignatureRecord(TextRecord):
    pkhash: Base64Bytes = b""
    signature: Base64Bytes

    omit_if_empty: ClassVar[tuple[str, ...]] = ("comment", "pkhash")


__all__ = [
    "Base64Bytes",
    "EncryptedPrivateKeyRecord",
    "PublicKeyRecord",
    "SignatureRecord",
    "TextRecord",
]
