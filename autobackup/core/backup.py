"""Timestamped copies of a database file and rotation of old copies."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union
import glob
import logging
import shutil

from autobackup.core.errors import InvalidConfiguration

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M"
TIMESTAMP_GLOB = "????????_????"

PathLike = Union[str, Path]


def backup_filename(database: PathLike, when: datetime) -> str:
    source = Path(database)
    return f"{source.stem}_{when.strftime(TIMESTAMP_FORMAT)}{source.suffix}"


def backup_pattern(database: PathLike) -> str:
    source = Path(database)
    return f"{glob.escape(source.stem)}_{TIMESTAMP_GLOB}{glob.escape(source.suffix)}"


def _backup_dir(backup_dir: Optional[PathLike]) -> Path:
    if backup_dir is None or not str(backup_dir).strip():
        raise InvalidConfiguration("BackupPath", None if backup_dir is None else str(backup_dir))
    return Path(backup_dir)


def create_backup(
    database: PathLike,
    backup_dir: Optional[PathLike],
    *,
    now: Optional[datetime] = None,
) -> Path:
    """Copy *database* into *backup_dir* as ``<stem>_YYYYMMDD_HHMM<suffix>``.

    A backup made within the same minute replaces the previous one.
    """

    target_dir = _backup_dir(backup_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    target = target_dir / backup_filename(database, now or datetime.now())
    shutil.copyfile(database, target)
    log.info("Backup created: %s -> %s", database, target)
    return target


def clean_backups(database: PathLike, backup_dir: Optional[PathLike], preserve: int) -> List[Path]:
    """Delete the oldest backups of *database* so at most *preserve* remain."""

    target_dir = _backup_dir(backup_dir)
    backups = sorted(target_dir.glob(backup_pattern(database)), key=lambda p: p.name)

    excess = max(len(backups) - max(preserve, 0), 0)
    removed: List[Path] = []
    for path in backups[:excess]:
        path.unlink()
        removed.append(path)
        log.info("Removed old backup %s", path)
    return removed


__all__ = [
    "TIMESTAMP_FORMAT",
    "backup_filename",
    "backup_pattern",
    "clean_backups",
    "create_backup",
]
