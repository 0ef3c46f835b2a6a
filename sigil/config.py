from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SCRYPT_SHA256 = "scrypt-sha256"
_ONE_GIB = 1 << 30


class KdfParams(BaseModel):
    """Cost parameters for the password-derived keystream.

    Persisted next to every encrypted key, so changing these defaults never
    breaks decryption of keys written earlier.
    """

    work_factor: int = Field(default=1 << 17, gt=1)
    block_size: int = Field(default=16, ge=1)
    parallelism: int = Field(default=1, ge=1)
    algo: str = SCRYPT_SHA256

    model_config = {"frozen": True}

    @field_validator("work_factor")
    @classmethod
    def _power_of_two(cls, value: int) -> int:
        if value & (value - 1):
            raise ValueError("work_factor must be a power of two")
        return value

    @field_validator("algo")
    @classmethod
    def _known_algo(cls, value: str) -> str:
        if value != SCRYPT_SHA256:
            raise ValueError(f"unsupported key derivation algorithm: {value}")
        return value


class HashingConfig(BaseModel):
    window_size: int = Field(default=_ONE_GIB, ge=1)
    use_mmap: bool = True


class SigilSettings(BaseSettings):
    kdf: KdfParams = Field(default_factory=KdfParams)
    hashing: HashingConfig = Field(default_factory=HashingConfig)
    log_level: str = "WARNING"
    json_logs: bool = False

    model_config = SettingsConfigDict(
        env_prefix="SIGIL_",
        env_nested_delimiter="__",
        extra="ignore",
    )


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    prefix = "SIGIL_"
    for key, raw_value in os.environ.items():
        if not key.startswith(prefix) or key == "SIGIL_PASSPHRASE":
            continue
        path = key[len(prefix) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path | None = None) -> SigilSettings:
    """Build settings from an optional YAML file plus ``SIGIL_*`` overrides."""
    raw: dict[str, object] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"config file not found: {config_path}")

        loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            raise ValueError("config file must contain a top-level mapping")

        section = loaded.get("sigil", loaded)
        if not isinstance(section, dict):
            raise ValueError("sigil config section must be a mapping")
        raw = section

    merged = _apply_env_overrides(raw)
    return SigilSettings.model_validate(merged)


__all__ = [
    "SCRYPT_SHA256",
    "HashingConfig",
    "KdfParams",
    "SigilSettings",
    "load_config",
]
