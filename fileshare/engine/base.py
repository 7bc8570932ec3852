from abc import ABC, abstractmethod
from typing import Iterable, Optional

from ..models import Credentials, EngineFile, HandleOrPath


class ServingEngine(ABC):
	"""Control surface of an HTTP engine that serves the shared files.

	Only the session controller talks to an engine. Every call is
	best-effort; start() reports success as a boolean.
	"""

	@abstractmethod
	def start(self, port: int, credentials: Credentials, files: Iterable[EngineFile]) -> bool:
		...

	@abstractmethod
	def stop(self) -> None:
		...

	@abstractmethod
	def set_credentials(self, username: str, password: str) -> None:
		...

	@abstractmethod
	def add_file(self, file_id: str, display_name: str, handle_or_path: HandleOrPath, size: int) -> None:
		...

	@abstractmethod
	def remove_file(self, file_id: str) -> None:
		...

	@abstractmethod
	def clear_files(self) -> None:
		...

	@abstractmethod
	def is_running(self) -> bool:
		...

	@property
	def port(self) -> Optional[int]:
		return None
