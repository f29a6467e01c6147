"""Tray balloons and error dialogs for backup results."""

from __future__ import annotations

from typing import Callable, Optional
import logging

from PyQt5 import QtWidgets

log = logging.getLogger(__name__)

BALLOON_TIMEOUT_MS = 1000
APP_TITLE = "AutoBackup"


def _show_fatal(message: str) -> None:
    QtWidgets.QMessageBox.critical(None, APP_TITLE, message)


class Notifier:
    def __init__(
        self,
        tray: Optional[QtWidgets.QSystemTrayIcon] = None,
        show_error: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._tray = tray
        self._show_error = show_error or _show_fatal

    def _tray_icon(self) -> QtWidgets.QSystemTrayIcon:
        if self._tray is None:
            self._tray = QtWidgets.QSystemTrayIcon()
        return self._tray

    def connect(self, monitor) -> None:
        monitor.backup_created.connect(self.on_backup_created)
        monitor.backup_failed.connect(self.on_backup_failed)

    def send_info(self, title: str, message: str) -> None:
        tray = self._tray_icon()
        tray.setVisible(True)
        tray.showMessage(title, message, QtWidgets.QSystemTrayIcon.Information, BALLOON_TIMEOUT_MS)

    def send_error(self, title: str, message: str) -> None:
        tray = self._tray_icon()
        tray.setVisible(True)
        tray.showMessage(title, message, QtWidgets.QSystemTrayIcon.Critical, BALLOON_TIMEOUT_MS)

    def on_backup_created(self, source: str, target: str) -> None:
        self.send_info("Backup created", f"Backup created successfully: {target}")

    def on_backup_failed(self, source: str, message: str) -> None:
        log.error("Backup failed for %s", source)
        self.send_error("Backup failed", message)
        self._show_error(message)


__all__ = ["Notifier"]
