import pytest

pytest.importorskip("PyQt5")

from autobackup.core.backup_monitor import BackupMonitor
from autobackup.core.config_store import BackupSettings


class DummySignal:
    def __init__(self):
        self._callbacks = []

    def connect(self, cb):
        self._callbacks.append(cb)

    def disconnect(self, cb):
        self._callbacks.remove(cb)

    def emit(self, *args):
        for cb in list(self._callbacks):
            cb(*args)


class DummyHost:
    def __init__(self):
        self.file_opened = DummySignal()
        self.file_saving = DummySignal()
        self.file_saved = DummySignal()
        self.file_closed = DummySignal()


def _settings(backup_dir, **overrides) -> BackupSettings:
    values = dict(
        backup_path=str(backup_dir),
        backups_preserve=10,
        backup_on_database_exit=True,
        backup_on_database_change=False,
        backup_only_when_database_has_changed=True,
    )
    values.update(overrides)
    return BackupSettings(**values)


@pytest.fixture()
def database(tmp_path):
    db = tmp_path / "vault.kdbx"
    db.write_bytes(b"data")
    return db


def _record(monitor):
    created, failed = [], []
    monitor.backup_created.connect(lambda source, target: created.append(target))
    monitor.backup_failed.connect(lambda source, message: failed.append(message))
    return created, failed


def test_backup_on_exit_only_when_modified(tmp_path, database):
    backups = tmp_path / "backups"
    monitor = BackupMonitor(_settings(backups))
    host = DummyHost()
    monitor.attach(host)
    created, failed = _record(monitor)

    host.file_opened.emit(str(database))
    host.file_saving.emit(str(database), True)
    host.file_saving.emit(str(database), False)
    assert monitor.is_pending(database)
    host.file_closed.emit(str(database))

    assert len(created) == 1 and failed == []
    assert len(list(backups.iterdir())) == 1
    assert not monitor.is_tracked(database)


def test_unmodified_database_is_not_backed_up(tmp_path, database):
    backups = tmp_path / "backups"
    monitor = BackupMonitor(_settings(backups))
    created, _ = _record(monitor)

    monitor.database_opened(str(database))
    monitor.database_closed(str(database))

    assert created == []
    assert not backups.exists()


def test_backup_on_change_follows_save_flag(tmp_path, database):
    monitor = BackupMonitor(
        _settings(tmp_path / "b", backup_on_database_exit=False, backup_on_database_change=True)
    )
    created, _ = _record(monitor)
    monitor.database_opened(database)

    monitor.database_saving(str(database), True)
    monitor.database_saved(str(database))
    assert len(created) == 1
    assert not monitor.is_pending(database)

    monitor.database_saving(str(database), False)
    monitor.database_saved(str(database))
    assert len(created) == 1


def test_backup_in_source_dir(tmp_path, database):
    monitor = BackupMonitor(_settings("", backup_only_when_database_has_changed=False))
    created, _ = _record(monitor)

    monitor.database_opened(str(database))
    monitor.database_closed(str(database))

    assert len(created) == 1
    assert created[0].startswith(str(database.resolve().parent))


def test_excluded_database_is_skipped(tmp_path, database):
    monitor = BackupMonitor(
        _settings(
            tmp_path / "b",
            backup_exclusions=("*.KDBX",),
            backup_only_when_database_has_changed=False,
        )
    )
    created, _ = _record(monitor)

    monitor.database_opened(str(database))
    monitor.database_closed(str(database))

    assert monitor.is_excluded(database)
    assert created == []


def test_untracked_database_is_ignored(tmp_path, database):
    monitor = BackupMonitor(_settings(tmp_path / "b", backup_only_when_database_has_changed=False))

    assert monitor.backup(str(database)) is None


def test_failure_is_emitted_not_raised(tmp_path, database):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    monitor = BackupMonitor(_settings(blocker, backup_only_when_database_has_changed=False))
    created, failed = _record(monitor)

    monitor.database_opened(str(database))
    monitor.database_closed(str(database))

    assert created == []
    assert len(failed) == 1
    assert str(database.resolve()) in failed[0]


def test_rotation_and_settings_update(tmp_path, database):
    backups = tmp_path / "b"
    for name in ("vault_20200101_0000.kdbx", "vault_20200102_0000.kdbx"):
        backups.mkdir(exist_ok=True)
        (backups / name).write_bytes(b"")
    monitor = BackupMonitor(_settings(backups))
    monitor.apply_settings(_settings(backups, backups_preserve=1, backup_only_when_database_has_changed=False))

    monitor.database_opened(str(database))
    target = monitor.backup(str(database))

    assert [p.name for p in backups.iterdir()] == [target.name]


def test_detach_stops_events(tmp_path, database):
    monitor = BackupMonitor(_settings(tmp_path / "b"))
    host = DummyHost()
    monitor.attach(host)
    monitor.detach(host)

    host.file_opened.emit(str(database))

    assert not monitor.is_tracked(database)
