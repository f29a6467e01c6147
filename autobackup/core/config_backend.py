"""File-backed access to the INI document holding the plugin settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
import codecs
import logging
import os
import re
import sys

from autobackup.core.errors import StorageFailure
from autobackup.utils.ini_preserver import KeyValue, classify_line, extract_section, keys_match, upsert

log = logging.getLogger(__name__)

DEFAULT_FILENAME = "autobackup.ini"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass
class _Document:
    lines: List[str]
    newline: str
    trailing_newline: bool
    bom: bool


class ConfigBackend:
    """Reads and rewrites a single INI file.

    Nothing is cached: every call loads the whole file again so edits made
    by hand between calls are always seen.  Writes replace the whole file.
    """

    def __init__(
        self,
        ini_path: Optional[str] = None,
        *,
        create: bool = False,
        encoding: str = "utf-8",
    ) -> None:
        base_dir = os.path.dirname(sys.argv[0])
        self._path = Path(ini_path or (Path(base_dir) / DEFAULT_FILENAME))
        self._encoding = encoding
        # A UTF-8 byte order mark is stripped on read and restored on write.
        self._utf8 = codecs.lookup(encoding).name in ("utf-8", "utf-8-sig")
        if self._utf8:
            self._encoding = "utf-8"
        if create and not self._path.exists():
            log.info("Creating empty settings file %s", self._path)
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._path.touch()
            except OSError as exc:
                raise StorageFailure(self._path, exc.strerror or str(exc)) from exc

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_section(self, section: str, include_comments: bool = False) -> List[str]:
        return extract_section(self._read().lines, section, include_comments)

    def get_value(self, section: str, key: str, lowercase: bool = False) -> Optional[str]:
        for line in self.get_section(section):
            kind = classify_line(line)
            if isinstance(kind, KeyValue) and keys_match(kind.key, key):
                return kind.value.lower() if lowercase else kind.value
        return None

    def set_value(self, section: str, key: str, value: str, lowercase: bool = False) -> None:
        document = self._read()
        if not document.lines:
            document.trailing_newline = True
        updated = upsert(document.lines, section, key, value, lowercase)
        log.debug(
            "Writing %s: [%s] %s (%d -> %d lines)", self._path, section, key, len(document.lines), len(updated)
        )
        document.lines = updated
        self._write(document)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _read(self) -> _Document:
        try:
            data = self._path.read_bytes()
        except FileNotFoundError as exc:
            raise StorageFailure(self._path, "file does not exist") from exc
        except OSError as exc:
            raise StorageFailure(self._path, exc.strerror or str(exc)) from exc

        bom = self._utf8 and data.startswith(codecs.BOM_UTF8)
        if bom:
            data = data[len(codecs.BOM_UTF8) :]
        try:
            raw = data.decode(self._encoding)
        except UnicodeDecodeError as exc:
            raise StorageFailure(self._path, f"not valid {self._encoding}") from exc

        if "\r\n" in raw:
            newline = "\r\n"
        elif "\n" in raw:
            newline = "\n"
        elif "\r" in raw:
            newline = "\r"
        else:
            newline = os.linesep

        # Only CR, LF and CRLF end a line; form feeds and the like stay inside it.
        lines = _LINE_BREAK.split(raw)
        trailing_newline = raw.endswith(("\n", "\r"))
        if lines and lines[-1] == "":
            lines.pop()
        return _Document(lines, newline, trailing_newline, bom)

    def _write(self, document: _Document) -> None:
        lines = document.lines
        text = document.newline.join(lines)
        if lines and document.trailing_newline:
            text += document.newline
        data = text.encode(self._encoding)
        if document.bom:
            data = codecs.BOM_UTF8 + data
        try:
            with open(self._path, "wb") as handle:
                handle.write(data)
        except OSError as exc:
            raise StorageFailure(self._path, exc.strerror or str(exc)) from exc


__all__ = ["ConfigBackend", "DEFAULT_FILENAME"]
