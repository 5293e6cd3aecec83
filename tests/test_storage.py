import threading
import time
import lmdb
import pytest
from pathlib import Path
from notestore.lib import schema
from notestore.lib.errors import EncodeError, OpenError, SerializationError
from notestore.lib.models import Credential, Note, Notebook, NotebookCacheList, Settings
from notestore.lib.storage import Database, encode_version, decode_version

def make_db(tmp_path: Path, **kw) -> Database:
    return Database.open(tmp_path, **kw)

def test_open_creates_file_at_current_version(tmp_path: Path):
    with make_db(tmp_path / 'cfg') as db:
        assert db.path == tmp_path / 'cfg' / 'clinote.db'
        assert db.version() == schema.SOFTWARE_DB_VERSION
    assert (tmp_path / 'cfg' / 'clinote.db').exists()

def test_fresh_store_returns_zero_values(tmp_path: Path):
    with make_db(tmp_path) as db:
        assert db.get_settings() == Settings()
        assert db.get_notebook_cache() == NotebookCacheList()
        assert db.get_search() == []
        assert db.get_note_recovery_point() == Note()
        assert db.credentials.get_all() == []

def test_stored_null_reads_as_zero_values(tmp_path: Path):
    with make_db(tmp_path) as db:
        db.put_raw(schema.SETTINGS_BUCKET, schema.SETTINGS_KEY, b'null')
        db.put_raw(schema.CACHE_BUCKET, schema.NOTEBOOK_CACHE_KEY, b'null')
        db.put_raw(schema.CACHE_BUCKET, schema.NOTE_RECOVER_CACHE_KEY, b'null')
        assert db.get_settings() == Settings()
        assert db.get_notebook_cache() == NotebookCacheList()
        assert db.get_note_recovery_point() == Note()

def test_store_uses_only_known_buckets(tmp_path: Path):
    with make_db(tmp_path) as db:
        db.store_settings(Settings(editor='vim'))
        db.credentials.add(Credential('a', 's'))
        db.save_search([Note(title='n')])
        path = db.path
    env = lmdb.open(str(path), subdir=False, max_dbs=8, readonly=True)
    try:
        with env.begin() as txn:
            names = {key for key, _ in txn.cursor()}
    finally:
        env.close()
    assert names == {schema.DB_BUCKET, schema.SETTINGS_BUCKET, schema.CACHE_BUCKET}

def test_get_raw_missing_bucket_is_created(tmp_path: Path):
    with make_db(tmp_path) as db:
        assert db.get_raw(b'extra', b'k') is None
        db.put_raw(b'extra', b'k', b'v')
        assert db.get_raw(b'extra', b'k') == b'v'
        assert db.get_raw(b'extra', b'other') is None
    env = lmdb.open(str(tmp_path / 'clinote.db'), subdir=False, max_dbs=8)
    try:
        env.open_db(b'extra', create=False)
    finally:
        env.close()

def test_raw_bytes_pass_through(tmp_path: Path):
    payload = bytes(range(256))
    with make_db(tmp_path) as db:
        db.put_raw(schema.CACHE_BUCKET, b'blob', payload)
        assert db.get_raw(schema.CACHE_BUCKET, b'blob') == payload

def test_settings_roundtrip(tmp_path: Path):
    with make_db(tmp_path) as db:
        db.store_settings(Settings(editor='vim'))
        assert db.get_settings() == Settings(editor='vim')

def test_notebook_cache_roundtrip(tmp_path: Path):
    cache = NotebookCacheList(limit=20, timestamp=1700000000, notebooks=[Notebook('Work', 'g1', 'Jobs'), Notebook('Home', 'g2')])
    with make_db(tmp_path) as db:
        db.store_notebook_list(cache)
        assert db.get_notebook_cache() == cache

def test_search_roundtrip(tmp_path: Path):
    notes = [Note(title='One', guid='n1', notebook=Notebook('Work', 'g1')), Note(title='Two', guid='n2', deleted=5)]
    with make_db(tmp_path) as db:
        db.save_search(notes)
        assert db.get_search() == notes

def test_recovery_point_roundtrip(tmp_path: Path):
    note = Note(title='Draft', md='# Draft\nbody', created=1, updated=2)
    with make_db(tmp_path) as db:
        db.save_note_recovery_point(note)
        assert db.get_note_recovery_point() == note

def test_data_survives_reopen(tmp_path: Path):
    with make_db(tmp_path) as db:
        db.store_settings(Settings(editor='nano'))
    with make_db(tmp_path) as db:
        assert db.get_settings().editor == 'nano'

def test_corrupt_blob_raises_serialization_error(tmp_path: Path):
    with make_db(tmp_path) as db:
        db.put_raw(schema.SETTINGS_BUCKET, schema.SETTINGS_KEY, b'{not json')
        with pytest.raises(SerializationError):
            db.get_settings()

def test_idle_close_reopens_transparently(tmp_path: Path):
    db = make_db(tmp_path, wait_time=0.05)
    db.store_settings(Settings(editor='ed'))
    deadline = time.monotonic() + 3
    while db.is_open and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not db.is_open
    assert db.get_settings().editor == 'ed'
    assert db.is_open
    db.close()
    db.close()
    assert not db.is_open

def test_open_failure_raises_open_error(tmp_path: Path):
    def opener(path):
        raise lmdb.Error('cannot open')
    with pytest.raises(OpenError):
        Database.open(tmp_path, opener=opener)

def test_concurrent_writers_distinct_keys(tmp_path: Path):
    with make_db(tmp_path, wait_time=0.01) as db:
        def worker(n):
            for i in range(20):
                db.put_raw(schema.CACHE_BUCKET, f'k{n}-{i}'.encode(), str(i).encode())
        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        for n in range(4):
            for i in range(20):
                assert db.get_raw(schema.CACHE_BUCKET, f'k{n}-{i}'.encode()) == str(i).encode()

@pytest.mark.parametrize('version', [0, 300, 2**56 - 1])
def test_version_encoding(version):
    data = encode_version(version)
    assert len(data) == 8
    assert decode_version(data) == version

def test_version_encoding_layout():
    assert encode_version(1) == b'\x01' + b'\x00' * 7
    assert decode_version(None) == 0
    assert decode_version(b'') == 0

@pytest.mark.parametrize('version', [-1, 2**56])
def test_version_encoding_rejects(version):
    with pytest.raises(EncodeError):
        encode_version(version)
