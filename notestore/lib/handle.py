"""Lazy handle manager for the store file.

The engine keeps a lock on the file for as long as it is open. Commands
usually touch the store several times in a row, so the handle is opened on
first use, kept open while there is activity and closed by an idle watcher
once nothing has used it for `wait_time` seconds. The next acquire reopens it.

Protocol:
- acquire() returns the live handle and holds the manager lock until
  release(). Prefer `with handle.borrow() as env:`.
- The watcher is reset with a non-blocking send into a one-slot queue; the
  send never touches the manager lock, so it cannot deadlock with a watcher
  that is deciding to close.
- Closing (idle or explicit) always happens under the manager lock, so a
  handle is never closed while borrowed.
"""
from __future__ import annotations
import logging, queue, threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional
import lmdb
from notestore.config.settings import DB_FILE_MODE, IDLE_CLOSE_TIMEOUT, MAP_SIZE, MAX_BUCKETS
from .errors import OpenError

log = logging.getLogger(__name__)

_RESET = object()

def open_env(path: Path) -> lmdb.Environment:
	"""Open the engine on a single file (no sub-directory)."""
	return lmdb.open(str(path), subdir=False, mode=DB_FILE_MODE, map_size=MAP_SIZE, max_dbs=MAX_BUCKETS, lock=True)

class _IdleWatcher(threading.Thread):
	"""Closes the handle after `wait_time` seconds without a reset.

	One watcher is started per closed -> open transition.
	"""

	def __init__(self, owner: 'LazyHandle', wait_time: float):
		super().__init__(name='notestore-idle-watcher', daemon=True)
		self._owner = owner
		self.wait_time = wait_time
		self._signals: queue.Queue = queue.Queue(maxsize=1)
		self._stopped = threading.Event()

	def reset(self) -> None:
		try:
			self._signals.put_nowait(_RESET)
		except queue.Full:
			pass  # a reset is already pending

	def stop(self) -> None:
		self._stopped.set()
		self.reset()

	def pending(self) -> bool:
		return not self._signals.empty()

	def run(self):
		while not self._stopped.is_set():
			try:
				self._signals.get(timeout=self.wait_time)
				continue
			except queue.Empty:
				pass
			try:
				if self._owner._close_idle(self):
					return
			except Exception:
				log.exception('Idle close of %s failed', self._owner.path)
				return

class LazyHandle:
	"""Owns the open/closed lifecycle of the store handle."""

	def __init__(self, path: Path, wait_time: float = IDLE_CLOSE_TIMEOUT, opener: Optional[Callable[[Path], Any]] = None):
		self.path = Path(path)
		self.wait_time = wait_time
		self._opener = opener or open_env
		self._lock = threading.Lock()
		self._env: Any = None
		self._watcher: Optional[_IdleWatcher] = None

	@property
	def is_open(self) -> bool:
		return self._env is not None

	def acquire(self) -> Any:
		"""Return the live handle, opening the file if needed.

		The caller MUST call release() afterwards, even on error. Raises
		OpenError if the file cannot be opened; the lock is released first.
		"""
		self._lock.acquire()
		if self._env is not None:
			self._watcher.reset()
			return self._env
		try:
			self._env = self._opener(self.path)
			log.debug(f"Opened store {self.path}")
			self._watcher = _IdleWatcher(self, self.wait_time)
			self._watcher.start()
		except BaseException as e:
			env, self._env, self._watcher = self._env, None, None
			try:
				if env is not None:
					env.close()
			finally:
				self._lock.release()
			if isinstance(e, (lmdb.Error, OSError)):
				raise OpenError(f"Failed to open {self.path}: {e}") from e
			raise
		return self._env

	def release(self) -> None:
		if self._watcher is not None:
			self._watcher.reset()
		self._lock.release()

	@contextmanager
	def borrow(self) -> Iterator[Any]:
		env = self.acquire()
		try:
			yield env
		finally:
			self.release()

	def close(self) -> None:
		"""Close the handle if open. Must not be called while holding a borrowed handle."""
		with self._lock:
			self._close_locked()

	def _close_idle(self, watcher: _IdleWatcher) -> bool:
		"""Called by a watcher whose window elapsed. Returns True when it should exit."""
		with self._lock:
			if self._watcher is not watcher:
				return True
			if watcher.pending():
				# activity raced with the timeout; keep watching
				return False
			log.debug(f"Store {self.path} idle for {self.wait_time}s, closing")
			self._close_locked()
			return True

	def _close_locked(self) -> None:
		if self._watcher is not None:
			self._watcher.stop()
			self._watcher = None
		if self._env is None:
			return
		env, self._env = self._env, None
		env.close()
		log.debug(f"Closed store {self.path}")
