"""Storage layer: versioned opener, raw get/put and typed accessors.

Every accessor call round-trips through the store file; nothing is cached in
memory between calls.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional
import lmdb
from notestore.config.settings import DB_FILENAME, IDLE_CLOSE_TIMEOUT
from . import schema
from .errors import EncodeError, IndexOutOfRangeError, NoMatchingRecordError
from .handle import LazyHandle
from .migrations import migrate as default_migrate
from .models import Credential, Note, NotebookCacheList, Settings, encode, decode, decode_list

log = logging.getLogger(__name__)

VERSION_SLOT = 8  # bytes reserved for the encoded schema version

def encode_version(version: int) -> bytes:
	"""Unsigned varint, zero padded to VERSION_SLOT bytes."""
	if version < 0:
		raise EncodeError(f"Negative db version {version}")
	out = bytearray()
	while version >= 0x80:
		out.append((version & 0x7F) | 0x80)
		version >>= 7
	out.append(version)
	if len(out) > VERSION_SLOT:
		raise EncodeError('Db version too large to encode')
	return bytes(out.ljust(VERSION_SLOT, b'\x00'))

def decode_version(data: Optional[bytes]) -> int:
	"""Decode a stored varint. Missing or empty data means version 0."""
	version = shift = 0
	for b in data or b'':
		version |= (b & 0x7F) << shift
		if b < 0x80:
			return version
		shift += 7
	return 0

class Database:
	"""The client's local store.

	Use Database.open() rather than the constructor: it also brings the
	on-disk schema up to date.
	"""

	def __init__(self, path: Path, wait_time: float = IDLE_CLOSE_TIMEOUT, opener: Optional[Callable[[Path], Any]] = None):
		self.path = Path(path)
		self._handle = LazyHandle(self.path, wait_time=wait_time, opener=opener)
		self.credentials = CredentialStore(self)

	@classmethod
	def open(cls, config_dir: Path | str, *, wait_time: float = IDLE_CLOSE_TIMEOUT, migrate: Optional[Callable[['Database', int], None]] = None, opener: Optional[Callable[[Path], Any]] = None) -> 'Database':
		"""Open the store in `config_dir`, migrating it if it is older than this software."""
		migrate = migrate or default_migrate
		config_dir = Path(config_dir)
		config_dir.mkdir(parents=True, exist_ok=True)
		db = cls(config_dir / DB_FILENAME, wait_time=wait_time, opener=opener)
		try:
			current = db.version()
			if current < schema.SOFTWARE_DB_VERSION:
				log.info(f"Migrating store {db.path} from version {current} to {schema.SOFTWARE_DB_VERSION}")
				migrate(db, current)
				db.save_version(schema.SOFTWARE_DB_VERSION)
		except Exception:
			db.close()
			raise
		return db

	@property
	def is_open(self) -> bool:
		"""Whether the store file is currently held open."""
		return self._handle.is_open

	def close(self) -> None:
		"""Shut down the connection to the store. Safe to call repeatedly."""
		self._handle.close()

	def __enter__(self) -> 'Database':
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	# --- raw access ---

	def get_raw(self, bucket: bytes, key: bytes) -> Optional[bytes]:
		"""Return the bytes stored under `key`, or None if nothing is stored.

		A missing bucket counts as empty; it is created so later writes find it.
		"""
		with self._handle.borrow() as env:
			try:
				with env.begin() as txn:
					db = env.open_db(bucket, txn=txn, create=False)
					return txn.get(key, db=db)
			except lmdb.NotFoundError:
				pass
			log.debug(f"Creating missing bucket {bucket!r}")
			with env.begin(write=True) as txn:
				env.open_db(bucket, txn=txn)
			return None

	def put_raw(self, bucket: bytes, key: bytes, data: bytes) -> None:
		with self._handle.borrow() as env:
			with env.begin(write=True) as txn:
				db = env.open_db(bucket, txn=txn)
				txn.put(key, data, db=db)

	# --- schema version ---

	def version(self) -> int:
		return decode_version(self.get_raw(schema.DB_BUCKET, schema.DB_VERSION_KEY))

	def save_version(self, version: int) -> None:
		self.put_raw(schema.DB_BUCKET, schema.DB_VERSION_KEY, encode_version(version))

	# --- typed accessors ---

	def get_settings(self) -> Settings:
		data = self.get_raw(schema.SETTINGS_BUCKET, schema.SETTINGS_KEY)
		return decode(Settings, data) if data else Settings()

	def store_settings(self, settings: Settings) -> None:
		self.put_raw(schema.SETTINGS_BUCKET, schema.SETTINGS_KEY, encode(settings))

	def get_notebook_cache(self) -> NotebookCacheList:
		data = self.get_raw(schema.CACHE_BUCKET, schema.NOTEBOOK_CACHE_KEY)
		return decode(NotebookCacheList, data) if data else NotebookCacheList()

	def store_notebook_list(self, cache: NotebookCacheList) -> None:
		self.put_raw(schema.CACHE_BUCKET, schema.NOTEBOOK_CACHE_KEY, encode(cache))

	def get_search(self) -> List[Note]:
		"""Return the notes of the last search."""
		data = self.get_raw(schema.CACHE_BUCKET, schema.SEARCH_CACHE_KEY)
		return decode_list(Note, data) if data else []

	def save_search(self, notes: List[Note]) -> None:
		self.put_raw(schema.CACHE_BUCKET, schema.SEARCH_CACHE_KEY, encode(list(notes)))

	def get_note_recovery_point(self) -> Note:
		"""Return the draft saved by save_note_recovery_point, or an empty Note."""
		data = self.get_raw(schema.CACHE_BUCKET, schema.NOTE_RECOVER_CACHE_KEY)
		return decode(Note, data) if data else Note()

	def save_note_recovery_point(self, note: Note) -> None:
		"""Keep a copy of a note so it can be recovered if saving it remotely fails."""
		self.put_raw(schema.CACHE_BUCKET, schema.NOTE_RECOVER_CACHE_KEY, encode(note))

class CredentialStore:
	"""The credential list, stored as a single blob in the settings bucket.

	Every mutation reads, modifies and rewrites the whole list.
	"""

	def __init__(self, db: Database):
		self._db = db

	def get_all(self) -> List[Credential]:
		data = self._db.get_raw(schema.SETTINGS_BUCKET, schema.CREDENTIALS_KEY)
		return decode_list(Credential, data) if data else []

	def add(self, cred: Credential) -> None:
		# duplicates are allowed
		creds = self.get_all()
		creds.append(cred)
		self._save(creds)

	def remove(self, cred: Credential) -> None:
		creds = self.get_all()
		for i, c in enumerate(creds):
			if c == cred:
				del creds[i]
				break
		else:
			raise NoMatchingRecordError(f"No credential matching {cred.name!r}")
		self._save(creds)

	def get_by_index(self, index: int) -> Credential:
		creds = self.get_all()
		if index < 0 or index >= len(creds):
			raise IndexOutOfRangeError(f"Credential index {index} out of range")
		return creds[index]

	def _save(self, creds: List[Credential]) -> None:
		self._db.put_raw(schema.SETTINGS_BUCKET, schema.CREDENTIALS_KEY, encode(creds))
