"""Command line access to the settings file and to one-off backups."""

from __future__ import annotations

from typing import List, Optional
import argparse
import logging
import sys

from autobackup import __version__
from autobackup.core.backup import clean_backups, create_backup
from autobackup.core.config_backend import ConfigBackend
from autobackup.core.config_store import load_settings
from autobackup.core.errors import AutoBackupError

log = logging.getLogger(__name__)

EXIT_MISSING = 1
EXIT_FAILURE = 2


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autobackup")
    parser.add_argument("--ini", help="Path to the settings file (default: autobackup.ini beside the program; pass it explicitly for an installed script)")
    parser.add_argument("--create", action="store_true", help="Create the settings file if it does not exist")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    get = sub.add_parser("get", help="Print a single value")
    get.add_argument("section")
    get.add_argument("key")
    get.add_argument("--lower", action="store_true", help="Lower-case the value")

    set_ = sub.add_parser("set", help="Set or add a value")
    set_.add_argument("section")
    set_.add_argument("key")
    set_.add_argument("value")
    set_.add_argument("--lower", action="store_true", help="Store the value in lower case")

    section = sub.add_parser("section", help="Print the entries of a section")
    section.add_argument("section")
    section.add_argument("--comments", action="store_true", help="Include comment lines")

    sub.add_parser("settings", help="Print the parsed backup settings")

    backup = sub.add_parser("backup", help="Back up a database and rotate old copies")
    backup.add_argument("database")

    return parser


def _cmd_get(backend: ConfigBackend, args: argparse.Namespace) -> int:
    value = backend.get_value(args.section, args.key, lowercase=args.lower)
    if value is None:
        return EXIT_MISSING
    print(value)
    return 0


def _cmd_set(backend: ConfigBackend, args: argparse.Namespace) -> int:
    backend.set_value(args.section, args.key, args.value, lowercase=args.lower)
    return 0


def _cmd_section(backend: ConfigBackend, args: argparse.Namespace) -> int:
    for line in backend.get_section(args.section, include_comments=args.comments):
        print(line)
    return 0


def _cmd_settings(backend: ConfigBackend, args: argparse.Namespace) -> int:
    settings = load_settings(backend).unwrap()
    print(f"BackupPath={settings.backup_path or '<source directory>'}")
    print(f"BackupExclusions={'|'.join(settings.backup_exclusions)}")
    print(f"BackupsPreserve={settings.backups_preserve}")
    print(f"BackupOnDatabaseExit={settings.backup_on_database_exit}")
    print(f"BackupOnDatabaseChange={settings.backup_on_database_change}")
    print(f"BackupOnlyWhenDatabaseHasChanged={settings.backup_only_when_database_has_changed}")
    return 0


def _cmd_backup(backend: ConfigBackend, args: argparse.Namespace) -> int:
    settings = load_settings(backend).unwrap()
    backup_dir = settings.backup_dir_for(args.database)
    target = create_backup(args.database, backup_dir)
    clean_backups(args.database, backup_dir, settings.backups_preserve)
    print(target)
    return 0


COMMANDS = {
    "get": _cmd_get,
    "set": _cmd_set,
    "section": _cmd_section,
    "settings": _cmd_settings,
    "backup": _cmd_backup,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        backend = ConfigBackend(args.ini, create=args.create)
        return COMMANDS[args.command](backend, args)
    except (AutoBackupError, OSError) as exc:
        log.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE


__all__ = ["build_parser", "main"]
