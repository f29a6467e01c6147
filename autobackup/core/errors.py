"""Exception types shared by the configuration and backup code."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class AutoBackupError(Exception):
    """Base class for errors raised by :mod:`autobackup`."""


class StorageFailure(AutoBackupError):
    """The settings file could not be read or written."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot access '{self.path}': {reason}")


class InvalidConfiguration(AutoBackupError):
    """A configured value could not be converted to the type its consumer needs."""

    def __init__(self, key: str, value: Optional[str]) -> None:
        self.key = key
        self.value = value
        super().__init__(f'Invalid value for {key} "{value if value is not None else ""}".')
