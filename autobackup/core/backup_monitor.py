"""Decides when a database gets backed up, driven by the host's file events.

The host emits ``file_opened``, ``file_saving``, ``file_saved`` and
``file_closed``; the monitor keeps one "backup pending" flag per open
database and runs :func:`create_backup` / :func:`clean_backups` when the
configured trigger fires.
"""

from __future__ import annotations

from fnmatch import fnmatch
from pathlib import Path
from typing import Dict, Optional
import logging

from PyQt5 import QtCore

from autobackup.core.backup import clean_backups, create_backup
from autobackup.core.config_store import BackupSettings
from autobackup.core.errors import AutoBackupError

log = logging.getLogger(__name__)


def _normalize(path) -> str:
    return str(Path(path).resolve())


class BackupMonitor(QtCore.QObject):
    backup_created = QtCore.pyqtSignal(str, str)
    backup_failed = QtCore.pyqtSignal(str, str)

    def __init__(self, settings: BackupSettings, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._settings = settings
        self._pending: Dict[str, bool] = {}

    @property
    def settings(self) -> BackupSettings:
        return self._settings

    def is_tracked(self, database) -> bool:
        return _normalize(database) in self._pending

    def is_pending(self, database) -> bool:
        return self._pending.get(_normalize(database), False)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------
    @QtCore.pyqtSlot(object)
    def apply_settings(self, settings: BackupSettings) -> None:
        self._settings = settings

    def attach(self, host) -> None:
        host.file_opened.connect(self.database_opened)
        host.file_saving.connect(self.database_saving)
        host.file_saved.connect(self.database_saved)
        host.file_closed.connect(self.database_closed)

    def detach(self, host) -> None:
        host.file_opened.disconnect(self.database_opened)
        host.file_saving.disconnect(self.database_saving)
        host.file_saved.disconnect(self.database_saved)
        host.file_closed.disconnect(self.database_closed)

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------
    @QtCore.pyqtSlot(str)
    def database_opened(self, database: str) -> None:
        self._pending[_normalize(database)] = False

    @QtCore.pyqtSlot(str, bool)
    def database_saving(self, database: str, modified: bool) -> None:
        key = _normalize(database)
        settings = self._settings
        if settings.backup_on_database_exit and not settings.backup_on_database_change:
            # Only raised here; a successful backup on close clears it.
            if modified:
                self._pending[key] = True
        else:
            self._pending[key] = modified

    @QtCore.pyqtSlot(str)
    def database_saved(self, database: str) -> None:
        if not self._settings.backup_on_database_change:
            return
        self.backup(database)

    @QtCore.pyqtSlot(str)
    def database_closed(self, database: str) -> None:
        if self._settings.backup_on_database_exit:
            self.backup(database)
        self._pending.pop(_normalize(database), None)

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------
    def is_excluded(self, database) -> bool:
        source = Path(database)
        for pattern in self._settings.backup_exclusions:
            pattern = pattern.strip().lower()
            if not pattern:
                continue
            if fnmatch(source.name.lower(), pattern) or fnmatch(str(source).lower(), pattern):
                return True
        return False

    def backup(self, database: str) -> Optional[Path]:
        key = _normalize(database)
        if key not in self._pending:
            log.debug("Ignoring untracked database %s", key)
            return None
        if self.is_excluded(key):
            log.info("Skipping excluded database %s", key)
            return None
        settings = self._settings
        if settings.backup_only_when_database_has_changed and not self._pending[key]:
            log.debug("No changes to back up for %s", key)
            return None

        backup_dir = settings.backup_dir_for(key)

        try:
            target = create_backup(key, backup_dir)
            clean_backups(key, backup_dir, settings.backups_preserve)
        except (OSError, AutoBackupError) as exc:
            log.exception("Error creating backup of %s", key)
            self.backup_failed.emit(key, f'Error creating backup of "{key}":\n{exc}')
            return None

        self._pending[key] = False
        self.backup_created.emit(key, str(target))
        return target


__all__ = ["BackupMonitor"]
