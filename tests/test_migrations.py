import pytest
from pathlib import Path
from notestore.lib import schema
from notestore.lib.errors import StorageError
from notestore.lib.migrations import migrate
from notestore.lib.models import Credential, CredentialType, Settings
from notestore.lib.storage import Database

class Spy:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def __call__(self, db, from_version):
        self.calls.append(from_version)
        if self.fail:
            raise RuntimeError('migration failed')

def make_legacy_store(tmp_path: Path, api_key='oauth-token'):
    with Database.open(tmp_path) as db:
        db.store_settings(Settings(api_key=api_key, editor='vim'))
        db.save_version(0)

def test_fresh_store_migrates_once_from_zero(tmp_path: Path):
    spy = Spy()
    with Database.open(tmp_path, migrate=spy) as db:
        assert db.version() == schema.SOFTWARE_DB_VERSION
    assert spy.calls == [0]

def test_current_store_never_migrates(tmp_path: Path):
    Database.open(tmp_path).close()
    spy = Spy()
    Database.open(tmp_path, migrate=spy).close()
    assert spy.calls == []

def test_skipped_versions_migrate_once(tmp_path: Path, monkeypatch):
    with Database.open(tmp_path) as db:
        assert db.version() == 1
    monkeypatch.setattr(schema, 'SOFTWARE_DB_VERSION', 3)
    spy = Spy()
    with Database.open(tmp_path, migrate=spy) as db:
        assert db.version() == 3
    assert spy.calls == [1]

def test_failed_migration_aborts_open(tmp_path: Path):
    with pytest.raises(RuntimeError):
        Database.open(tmp_path, migrate=Spy(fail=True))
    db = Database(tmp_path / 'clinote.db')
    try:
        assert db.version() == 0
    finally:
        db.close()

def test_token_moves_to_credential_store(tmp_path: Path):
    make_legacy_store(tmp_path)
    with Database.open(tmp_path) as db:
        assert db.version() == schema.SOFTWARE_DB_VERSION
        assert db.credentials.get_all() == [Credential('Evernote', 'oauth-token', CredentialType.EVERNOTE)]
        settings = db.get_settings()
        assert settings.api_key == ''
        assert settings.editor == 'vim'

def test_token_migration_is_idempotent(tmp_path: Path):
    make_legacy_store(tmp_path)
    with Database.open(tmp_path) as db:
        # simulate a crash after the step but before the version marker
        db.store_settings(Settings(api_key='oauth-token'))
        migrate(db, 0)
        assert len(db.credentials.get_all()) == 1

def test_no_token_is_noop(tmp_path: Path):
    make_legacy_store(tmp_path, api_key='')
    with Database.open(tmp_path) as db:
        assert db.credentials.get_all() == []

def test_unknown_version_raises(tmp_path: Path):
    with Database.open(tmp_path) as db:
        with pytest.raises(StorageError):
            migrate(db, -1)
