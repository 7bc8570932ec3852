"""Open OS-level read handles for shared files and keep them until release."""

import logging
import os
import threading
from typing import Any, BinaryIO, Callable, Dict, List, NamedTuple, Optional

from .models import SharedFile

logger = logging.getLogger(__name__)

Opener = Callable[[Any], BinaryIO]


class HandleOpenError(OSError):
	"""A shared file's source could not be opened for reading."""


class OpenResult(NamedTuple):
	handle: Optional[BinaryIO] = None
	error: Optional[HandleOpenError] = None

	@property
	def ok(self) -> bool:
		return self.handle is not None


def open_locator(locator: Any) -> BinaryIO:
	"""Default opener: a filesystem path or an already-open file descriptor."""
	if isinstance(locator, int):
		# Keep the caller's descriptor untouched; the store owns the duplicate.
		return os.fdopen(os.dup(locator), "rb")
	return open(os.fspath(locator), "rb")


def _close_quietly(file_id: str, handle: BinaryIO) -> None:
	try:
		handle.close()
	except OSError as e:
		logger.warning(f"Error closing handle for {file_id}: {e}")


class HandleStore:
	"""Exactly one open handle per successfully opened, still-registered file id."""

	def __init__(self, opener: Opener = None) -> None:
		self._opener = opener or open_locator
		self._lock = threading.Lock()
		self._handles: Dict[str, BinaryIO] = {}
		self._failed: Dict[str, str] = {}

	def open(self, file: SharedFile) -> OpenResult:
		with self._lock:
			existing = self._handles.get(file.id)
		if existing is not None:
			return OpenResult(handle=existing)

		# The opener may block on I/O; it runs without the store lock held.
		try:
			handle = self._opener(file.locator)
		except Exception as e:
			logger.error(f"Failed to open file: {file.display_name}", exc_info=True)
			with self._lock:
				self._failed[file.id] = str(e)
			error = e if isinstance(e, HandleOpenError) else HandleOpenError(str(e))
			return OpenResult(error=error)

		with self._lock:
			existing = self._handles.get(file.id)
			if existing is None:
				self._handles[file.id] = handle
				self._failed.pop(file.id, None)
		if existing is not None:
			# Lost a race with another open of the same id.
			_close_quietly(file.id, handle)
			return OpenResult(handle=existing)
		return OpenResult(handle=handle)

	def release(self, file_id: str) -> bool:
		"""Close and forget the handle for *file_id*. Returns False if there was none."""
		with self._lock:
			handle = self._handles.pop(file_id, None)
			self._failed.pop(file_id, None)
		if handle is None:
			return False
		_close_quietly(file_id, handle)
		return True

	def release_all(self) -> int:
		with self._lock:
			handles = list(self._handles.items())
			self._handles.clear()
			self._failed.clear()
		for file_id, handle in handles:
			_close_quietly(file_id, handle)
		return len(handles)

	def get(self, file_id: str) -> Optional[BinaryIO]:
		with self._lock:
			return self._handles.get(file_id)

	def has_failed(self, file_id: str) -> bool:
		with self._lock:
			return file_id in self._failed

	def failed_ids(self) -> List[str]:
		with self._lock:
			return list(self._failed)

	def open_ids(self) -> List[str]:
		with self._lock:
			return list(self._handles)

	def __len__(self) -> int:
		with self._lock:
			return len(self._handles)
