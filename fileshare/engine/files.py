import logging
import os
import threading
from typing import Dict, Iterable, List, Optional

from ..models import EngineFile

logger = logging.getLogger(__name__)


def _dup_handle(file: EngineFile) -> Optional[int]:
	source = file.handle_or_path
	if source is None or isinstance(source, (str, os.PathLike)):
		return None
	try:
		return os.dup(source.fileno())
	except (OSError, ValueError):
		logger.error(f"Unusable handle for file: {file.id}")
		return None


class EngineFileTable:
	"""The engine's view of the shared files, read by request handlers.

	Handle-backed entries get a private duplicate of the descriptor when they
	are added. Downloads read from that duplicate, never from the caller's
	handle, so the caller may close its handle at any time.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._files: Dict[str, EngineFile] = {}
		self._fds: Dict[str, int] = {}

	def replace(self, files: Iterable[EngineFile]) -> None:
		table = {f.id: f for f in files}
		fds = {}
		for f in table.values():
			fd = _dup_handle(f)
			if fd is not None:
				fds[f.id] = fd
		with self._lock:
			self._files, old = table, self._fds
			self._fds = fds
		_close_all(old.values())

	def add(self, file: EngineFile) -> None:
		fd = _dup_handle(file)
		with self._lock:
			self._files[file.id] = file
			old = self._fds.pop(file.id, None)
			if fd is not None:
				self._fds[file.id] = fd
		_close_all([old])
		logger.info(f"Engine serving {file.display_name} (id: {file.id}, size: {file.size})")

	def remove(self, file_id: str) -> None:
		with self._lock:
			self._files.pop(file_id, None)
			old = self._fds.pop(file_id, None)
		_close_all([old])

	def clear(self) -> None:
		with self._lock:
			self._files, old = {}, self._fds
			self._fds = {}
		_close_all(old.values())

	def get(self, file_id: str) -> Optional[EngineFile]:
		with self._lock:
			return self._files.get(file_id)

	def open_descriptor(self, file_id: str) -> Optional[int]:
		"""A new descriptor for the entry's content, owned by the caller."""
		with self._lock:
			fd = self._fds.get(file_id)
			if fd is None:
				return None
			return os.dup(fd)

	def snapshot(self) -> List[EngineFile]:
		with self._lock:
			return list(self._files.values())

	def __len__(self) -> int:
		with self._lock:
			return len(self._files)


def _close_all(fds: Iterable[Optional[int]]) -> None:
	for fd in fds:
		if fd is None:
			continue
		try:
			os.close(fd)
		except OSError:
			logger.warning(f"Failed to close descriptor {fd}")
