from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from sigil.config import KdfParams
from sigil.core.key_codec import KeyCodec
from sigil.core.keys import Keypair, generate_keypair

# Real defaults cost ~256 MiB per derivation; tests only need the same code path.
FAST_KDF = KdfParams(work_factor=1 << 10, block_size=8, parallelism=1)


@pytest.fixture
def fast_kdf() -> KdfParams:
    return FAST_KDF


@pytest.fixture
def codec(fast_kdf: KdfParams) -> KeyCodec:
    return KeyCodec(fast_kdf)


@pytest.fixture
def keypair() -> Keypair:
    return generate_keypair()


@pytest.fixture
def random_file(tmp_path: Path) -> Callable[..., Path]:
    def _make(size: int, name: str = "payload.bin") -> Path:
        path = tmp_path / name
        path.write_bytes(os.urandom(size))
        return path

    return _make
