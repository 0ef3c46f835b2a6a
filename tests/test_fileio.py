from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest
from sigil.core import fileio
from sigil.core.fileio import TMP_SUFFIX, write_atomic


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def test_write_creates_file_with_mode(tmp_path: Path) -> None:
    target = tmp_path / "t.key"
    write_atomic(target, b"secret", 0o600)

    assert target.read_bytes() == b"secret"
    assert _mode(target) == 0o600
    assert not (tmp_path / ("t.key" + TMP_SUFFIX)).exists()


def test_write_replaces_existing_content(tmp_path: Path) -> None:
    target = tmp_path / "t.pub"
    target.write_bytes(b"old")
    write_atomic(target, b"new", 0o644)

    assert target.read_bytes() == b"new"
    assert _mode(target) == 0o644


def test_stale_temporary_file_is_removed(tmp_path: Path) -> None:
    target = tmp_path / "t.key"
    stale = tmp_path / ("t.key" + TMP_SUFFIX)
    stale.write_bytes(b"leftover from a crash")

    write_atomic(target, b"fresh")
    assert target.read_bytes() == b"fresh"
    assert not stale.exists()


def test_stale_directory_is_not_removed(tmp_path: Path) -> None:
    (tmp_path / ("t.key" + TMP_SUFFIX)).mkdir()
    with pytest.raises(OSError, match="not a regular file"):
        write_atomic(tmp_path / "t.key", b"data")


def test_interrupted_before_rename_keeps_old_content(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "t.key"
    target.write_bytes(b"old complete content")

    def crash(src: object, dst: object) -> None:
        raise OSError("simulated crash before rename")

    monkeypatch.setattr(fileio.os, "replace", crash)
    with pytest.raises(OSError, match="simulated crash"):
        write_atomic(target, b"new content")

    assert target.read_bytes() == b"old complete content"
    # the fully written temp file is left behind and cleaned up on the next write
    assert (tmp_path / ("t.key" + TMP_SUFFIX)).read_bytes() == b"new content"


def test_interrupted_before_rename_leaves_target_absent(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "new.key"

    def crash(src: object, dst: object) -> None:
        raise OSError("simulated crash before rename")

    monkeypatch.setattr(fileio.os, "replace", crash)
    with pytest.raises(OSError):
        write_atomic(target, b"data")

    assert not target.exists()


def test_write_failure_removes_temp_and_keeps_target(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "t.key"
    target.write_bytes(b"original")

    def failing_fsync(fd: int) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(fileio.os, "fsync", failing_fsync)
    with pytest.raises(OSError, match="disk full"):
        write_atomic(target, b"replacement")

    assert target.read_bytes() == b"original"
    assert not (tmp_path / ("t.key" + TMP_SUFFIX)).exists()


def test_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        write_atomic(tmp_path / "missing" / "t.key", b"data")


def test_accepts_string_path(tmp_path: Path) -> None:
    target = os.path.join(tmp_path, "plain.txt")
    write_atomic(target, b"ok", 0o644)
    assert Path(target).read_bytes() == b"ok"
