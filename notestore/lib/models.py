"""Domain objects persisted by the store.

Objects are stored as JSON. Unknown fields are ignored on read and missing
fields fall back to their defaults, so older and newer clients can share a
file.
"""
from __future__ import annotations
import json
from dataclasses import dataclass, field, fields, asdict
from enum import IntEnum
from typing import Any, Dict, List, Optional
from .errors import SerializationError

def _known(cls, raw: Dict[str, Any]) -> Dict[str, Any]:
	if not isinstance(raw, dict):
		raise SerializationError(f"Expected an object for {cls.__name__}, got {type(raw).__name__}")
	names = {f.name for f in fields(cls)}
	return {k: v for k, v in raw.items() if k in names}

class CredentialType(IntEnum):
	EVERNOTE = 0
	EVERNOTE_SANDBOX = 1
	DEV_TOKEN = 2

@dataclass
class Settings:
	api_key: str = ''  # legacy token location, emptied by the v1 migration
	editor: str = ''

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'Settings':
		return cls(**_known(cls, raw))

@dataclass
class Credential:
	name: str
	secret: str
	cred_type: CredentialType = CredentialType.EVERNOTE

	def __post_init__(self):
		self.cred_type = CredentialType(self.cred_type)

	def to_dict(self) -> Dict[str, Any]:
		return {'name': self.name, 'secret': self.secret, 'cred_type': int(self.cred_type)}

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'Credential':
		raw = _known(cls, raw)
		raw.setdefault('name', ''); raw.setdefault('secret', '')
		return cls(**raw)

@dataclass
class Notebook:
	name: str = ''
	guid: str = ''
	stack: str = ''

	def to_dict(self) -> Dict[str, Any]:
		return asdict(self)

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'Notebook':
		return cls(**_known(cls, raw))

@dataclass
class NotebookCacheList:
	limit: int = 0
	timestamp: int = 0
	notebooks: List[Notebook] = field(default_factory=list)

	def to_dict(self) -> Dict[str, Any]:
		return {'limit': self.limit, 'timestamp': self.timestamp, 'notebooks': [n.to_dict() for n in self.notebooks]}

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'NotebookCacheList':
		raw = _known(cls, raw)
		raw['notebooks'] = [Notebook.from_dict(n) for n in raw.get('notebooks') or []]
		return cls(**raw)

@dataclass
class Note:
	title: str = ''
	guid: str = ''
	body: str = ''
	md: str = ''
	notebook: Optional[Notebook] = None
	deleted: int = 0
	created: int = 0
	updated: int = 0

	def to_dict(self) -> Dict[str, Any]:
		d = asdict(self)
		d['notebook'] = self.notebook.to_dict() if self.notebook else None
		return d

	@classmethod
	def from_dict(cls, raw: Dict[str, Any]) -> 'Note':
		raw = _known(cls, raw)
		if raw.get('notebook') is not None:
			raw['notebook'] = Notebook.from_dict(raw['notebook'])
		return cls(**raw)

def encode(obj: Any) -> bytes:
	"""Serialize a model, or a list of models, to UTF-8 JSON."""
	try:
		if isinstance(obj, list):
			payload = [o.to_dict() for o in obj]
		else:
			payload = obj.to_dict()
		return json.dumps(payload).encode('utf-8')
	except (AttributeError, TypeError, ValueError) as e:
		raise SerializationError(f"Failed to encode {type(obj).__name__}: {e}") from e

def _load(data: bytes) -> Any:
	try:
		return json.loads(data.decode('utf-8'))
	except (UnicodeDecodeError, json.JSONDecodeError) as e:
		raise SerializationError(f"Invalid stored data: {e}") from e

def decode(cls, data: bytes):
	"""Parse one `cls` object from stored bytes. A stored null decodes as `cls()`."""
	raw = _load(data)
	if raw is None:
		return cls()
	try:
		return cls.from_dict(raw)
	except (TypeError, ValueError) as e:
		raise SerializationError(f"Invalid {cls.__name__} data: {e}") from e

def decode_list(cls, data: bytes) -> list:
	"""Parse a JSON array of `cls` objects. A stored null decodes as an empty list."""
	raw = _load(data)
	if raw is None:
		return []
	if not isinstance(raw, list):
		raise SerializationError(f"Expected a list of {cls.__name__}")
	try:
		return [cls.from_dict(item) for item in raw]
	except (TypeError, ValueError) as e:
		raise SerializationError(f"Invalid {cls.__name__} data: {e}") from e
