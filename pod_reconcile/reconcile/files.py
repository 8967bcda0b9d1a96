"""Persistence helpers for manifest snapshots and unit descriptors."""

import os
from pathlib import Path

from pod_reconcile.reconcile.types import Owner
from pod_reconcile.utils.log import get_logger

logger = get_logger(__name__)

FILE_MODE = 0o644
DIR_MODE = 0o755


def _chown(path: Path, owner: Owner | None) -> None:
    if owner is not None:
        os.chown(path, owner.uid, owner.gid)


def ensure_directory(path: Path, owner: Owner | None = None, mode: int = DIR_MODE) -> bool:
    """Create ``path`` and any missing parents; returns whether anything was created.

    Only directories created here get ``owner`` and ``mode``.
    """
    missing = [p for p in (path, *path.parents) if not p.exists()]
    if not missing:
        return False
    for directory in reversed(missing):
        directory.mkdir(mode=mode)
        _chown(directory, owner)
        logger.debug(f"Created directory {directory}")
    return True


def write_file(
    path: Path, content: bytes, owner: Owner | None = None, mode: int = FILE_MODE
) -> bool:
    try:
        if path.read_bytes() == content:
            return False
    except FileNotFoundError:
        pass

    ensure_directory(path.parent, owner)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_bytes(content)
        tmp_path.chmod(mode)
        _chown(tmp_path, owner)
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.debug(f"Wrote {len(content)} bytes to {path}")
    return True


def remove_file(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug(f"Removed {path}")
    return True
