"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError
from sigil.config import HashingConfig, KdfParams, SigilSettings, load_config


class TestKdfParams:
    def test_defaults(self) -> None:
        params = KdfParams()
        assert params.work_factor == 1 << 17
        assert params.block_size == 16
        assert params.parallelism == 1
        assert params.algo == "scrypt-sha256"

    def test_work_factor_must_be_power_of_two(self) -> None:
        with pytest.raises(ValidationError, match="power of two"):
            KdfParams(work_factor=1000)

    @pytest.mark.parametrize("field", ["block_size", "parallelism"])
    def test_costs_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            KdfParams(**{field: 0})

    def test_unknown_algo_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unsupported"):
            KdfParams(algo="bcrypt")

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            KdfParams().block_size = 1  # type: ignore[misc]


class TestHashingConfig:
    def test_defaults(self) -> None:
        cfg = HashingConfig()
        assert cfg.window_size == 1 << 30
        assert cfg.use_mmap is True

    def test_window_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            HashingConfig(window_size=0)


class TestLoadConfig:
    def test_no_file_gives_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in ("SIGIL_KDF__WORK_FACTOR", "SIGIL_LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)
        settings = load_config()
        assert settings.kdf == KdfParams()
        assert settings.log_level == "WARNING"

    def test_yaml_section(self, tmp_path: Path) -> None:
        path = tmp_path / "sigil.yaml"
        path.write_text("sigil:\n  kdf:\n    work_factor: 1024\n  hashing:\n    use_mmap: false\n")
        settings = load_config(path)
        assert settings.kdf.work_factor == 1024
        assert settings.kdf.block_size == 16
        assert settings.hashing.use_mmap is False

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "sigil.yaml"
        path.write_text("kdf:\n  work_factor: 1024\n")
        monkeypatch.setenv("SIGIL_KDF__WORK_FACTOR", "2048")
        monkeypatch.setenv("SIGIL_JSON_LOGS", "true")
        settings = load_config(path)
        assert settings.kdf.work_factor == 2048
        assert settings.json_logs is True

    def test_passphrase_env_is_not_a_setting(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SIGIL_PASSPHRASE", "s3cret")
        settings = load_config()
        assert "s3cret" not in settings.model_dump_json()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_settings_type(self) -> None:
        assert isinstance(load_config(), SigilSettings)
