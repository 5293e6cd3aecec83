"""Exceptions raised by the storage layer."""
from __future__ import annotations

class StorageError(Exception): ...

class OpenError(StorageError):
	"""The store file could not be opened."""

class EncodeError(StorageError):
	"""The schema version does not fit its on-disk slot."""

class SerializationError(StorageError):
	"""A stored object could not be encoded or decoded."""

class IndexOutOfRangeError(StorageError, IndexError): ...

class NoMatchingRecordError(StorageError, LookupError): ...
