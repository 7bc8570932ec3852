import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from .models import SharedFile

logger = logging.getLogger(__name__)


class FileRegistry:
	"""Ordered collection of shared files. Insertion order is display order."""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._files: Dict[str, SharedFile] = {}

	@staticmethod
	def _new_id() -> str:
		return str(uuid.uuid4())

	def add(self, locator: Any, display_name: str, size: int) -> SharedFile:
		file = SharedFile(id=self._new_id(), display_name=display_name, locator=locator, size=int(size))
		with self._lock:
			self._files[file.id] = file
		logger.info(f"Added file: {display_name} (id: {file.id})")
		return file

	def remove(self, file_id: str) -> Optional[SharedFile]:
		"""Drop the record for *file_id*; returns it, or None if it was not registered."""
		with self._lock:
			file = self._files.pop(file_id, None)
		if file is not None:
			logger.info(f"Removed file: {file.display_name}")
		return file

	def clear(self) -> List[SharedFile]:
		with self._lock:
			removed = list(self._files.values())
			self._files.clear()
		logger.info(f"Cleared {len(removed)} files")
		return removed

	def get(self, file_id: str) -> Optional[SharedFile]:
		with self._lock:
			return self._files.get(file_id)

	def contains(self, file_id: str) -> bool:
		with self._lock:
			return file_id in self._files

	def list(self) -> List[SharedFile]:
		with self._lock:
			return list(self._files.values())

	def __len__(self) -> int:
		with self._lock:
			return len(self._files)
