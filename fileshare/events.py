import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)


class Signal:
	"""A named event that UI code can subscribe to."""

	def __init__(self, name: str) -> None:
		self.name = name
		self._lock = threading.Lock()
		self._callbacks: List[Callable[..., None]] = []

	def connect(self, callback: Callable[..., None]) -> Callable[..., None]:
		with self._lock:
			self._callbacks.append(callback)
		return callback

	def disconnect(self, callback: Callable[..., None]) -> None:
		with self._lock:
			try:
				self._callbacks.remove(callback)
			except ValueError:
				pass

	def emit(self, **payload) -> None:
		with self._lock:
			callbacks = list(self._callbacks)
		for cb in callbacks:
			try:
				cb(**payload)
			except Exception:
				logger.exception(f"Event callback error for {self.name}")

	def __len__(self) -> int:
		with self._lock:
			return len(self._callbacks)
