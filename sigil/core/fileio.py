from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

TMP_SUFFIX = ".tmp"


def _remove_stale(tmp: Path) -> None:
    if not tmp.exists() and not tmp.is_symlink():
        return
    if tmp.is_symlink() or not tmp.is_file():
        raise OSError(f"{tmp} can't be unlinked: not a regular file")
    logger.info("removing stale temporary file %s", tmp)
    tmp.unlink()


def write_atomic(path: str | os.PathLike[str], data: bytes, mode: int = 0o600) -> None:
    """Replace ``path`` with ``data`` without ever exposing a partial file.

    The bytes go to ``<path>.tmp`` in the same directory, are flushed and
    synced, then renamed over ``path``. Readers see either the previous
    complete file or the new one.
    """
    target = Path(path)
    tmp = target.with_name(target.name + TMP_SUFFIX)
    _remove_stale(tmp)

    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        # umask may have narrowed the creation mode
        os.chmod(tmp, mode)
    except BaseException:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            logger.warning("could not remove temporary file %s", tmp)
        raise

    os.replace(tmp, target)
    logger.debug("wrote %d bytes to %s (mode %o)", len(data), target, mode)


__all__ = ["TMP_SUFFIX", "write_atomic"]
