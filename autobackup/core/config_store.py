"""Typed backup settings loaded from the ``[config]`` section."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple
import logging
import os
import re

from PyQt5 import QtCore

from autobackup.core.config_backend import ConfigBackend
from autobackup.core.errors import InvalidConfiguration

log = logging.getLogger(__name__)

CONFIG_SECTION = "config"

KEY_BACKUP_PATH = "BackupPath"
KEY_BACKUP_EXCLUSIONS = "BackupExclusions"
KEY_BACKUPS_PRESERVE = "BackupsPreserve"
KEY_BACKUP_ON_DATABASE_EXIT = "BackupOnDatabaseExit"
KEY_BACKUP_ON_DATABASE_CHANGE = "BackupOnDatabaseChange"
KEY_BACKUP_ONLY_WHEN_DATABASE_HAS_CHANGED = "BackupOnlyWhenDatabaseHasChanged"

APP_DATA_PLACEHOLDER = "%AppData%"
TRUE_VALUES = ("true", "yes", "1")
INTEGER_PATTERN = re.compile(r"\s*[+-]?[0-9]+\s*")


@dataclass(frozen=True)
class BackupSettings:
    backup_path: str = ""
    backup_exclusions: Tuple[str, ...] = ()
    backups_preserve: int = 0
    backup_on_database_exit: bool = False
    backup_on_database_change: bool = False
    backup_only_when_database_has_changed: bool = False

    @property
    def backup_in_source_dir(self) -> bool:
        """Backups go next to the database when no path is configured."""
        return not self.backup_path.strip()

    def backup_dir_for(self, database) -> str:
        if self.backup_in_source_dir:
            return str(Path(database).resolve().parent)
        return self.backup_path


@dataclass(frozen=True)
class SettingsResult:
    settings: Optional[BackupSettings] = None
    error: Optional[InvalidConfiguration] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> BackupSettings:
        if self.error is not None:
            raise self.error
        assert self.settings is not None
        return self.settings


def app_data_dir() -> str:
    return os.environ.get("APPDATA") or str(Path.home() / ".config")


def expand_app_data(path: str) -> str:
    if APP_DATA_PLACEHOLDER in path:
        return path.replace(APP_DATA_PLACEHOLDER, app_data_dir())
    return path


def parse_flag(value: Optional[str]) -> bool:
    # Case-sensitive: "True" is not a true value.
    return value in TRUE_VALUES


def split_exclusions(value: Optional[str]) -> Tuple[str, ...]:
    if value is None or not value.strip():
        return ()
    return tuple(part for part in value.split("|") if part)


def parse_int(key: str, value: Optional[str]) -> int:
    # ASCII digits only: no underscores, no other scripts.
    if value is None or not INTEGER_PATTERN.fullmatch(value):
        raise InvalidConfiguration(key, value)
    return int(value)


def load_settings(backend: ConfigBackend) -> SettingsResult:
    """Read the six backup keys from *backend*.

    Storage errors propagate; a bad ``BackupsPreserve`` is returned as the
    result's ``error`` so the caller decides whether to abort.
    """

    def get(key: str) -> Optional[str]:
        return backend.get_value(CONFIG_SECTION, key)

    backup_path = get(KEY_BACKUP_PATH) or ""
    if backup_path.strip():
        backup_path = expand_app_data(backup_path)

    try:
        preserve = parse_int(KEY_BACKUPS_PRESERVE, get(KEY_BACKUPS_PRESERVE))
    except InvalidConfiguration as exc:
        log.warning("%s", exc)
        return SettingsResult(error=exc)

    settings = BackupSettings(
        backup_path=backup_path,
        backup_exclusions=split_exclusions(get(KEY_BACKUP_EXCLUSIONS)),
        backups_preserve=preserve,
        backup_on_database_exit=parse_flag(get(KEY_BACKUP_ON_DATABASE_EXIT)),
        backup_on_database_change=parse_flag(get(KEY_BACKUP_ON_DATABASE_CHANGE)),
        backup_only_when_database_has_changed=parse_flag(
            get(KEY_BACKUP_ONLY_WHEN_DATABASE_HAS_CHANGED)
        ),
    )
    log.debug("Loaded settings from %s: %s", backend.path, settings)
    return SettingsResult(settings=settings)


class SettingsStore(QtCore.QObject):
    """Holds the current :class:`BackupSettings` and announces changes.

    Consumers receive the store (or the settings it emits) explicitly.
    """

    settings_changed = QtCore.pyqtSignal(object)

    def __init__(self, backend: Optional[ConfigBackend] = None) -> None:
        super().__init__()
        self._backend = backend or ConfigBackend()
        self._settings: Optional[BackupSettings] = None

    @property
    def backend(self) -> ConfigBackend:
        return self._backend

    @property
    def settings(self) -> Optional[BackupSettings]:
        return self._settings

    def reload(self) -> SettingsResult:
        result = load_settings(self._backend)
        if result.ok:
            self._settings = result.settings
            self.settings_changed.emit(result.settings)
        return result

    def set_value(self, key: str, value: object) -> SettingsResult:
        self._backend.set_value(CONFIG_SECTION, key, str(value))
        return self.reload()


__all__ = [
    "APP_DATA_PLACEHOLDER",
    "BackupSettings",
    "CONFIG_SECTION",
    "KEY_BACKUPS_PRESERVE",
    "KEY_BACKUP_EXCLUSIONS",
    "KEY_BACKUP_ON_DATABASE_CHANGE",
    "KEY_BACKUP_ON_DATABASE_EXIT",
    "KEY_BACKUP_ONLY_WHEN_DATABASE_HAS_CHANGED",
    "KEY_BACKUP_PATH",
    "SettingsResult",
    "SettingsStore",
    "expand_app_data",
    "load_settings",
    "parse_flag",
    "parse_int",
    "split_exclusions",
]
