"""Session controller: the only component that drives the serving engine.

Every mutating operation runs under one controller-wide lock. Handle opens
may block on I/O, so they run with the lock released and their result is
committed only if the file is still registered afterwards.
"""

import enum
import logging
import threading
from typing import Any, List, Optional, Union

from .credentials import CredentialStore
from .engine.base import ServingEngine
from .events import Signal
from .handles import HandleStore, OpenResult
from .models import Credentials, EngineFile, SharedFile
from .network import share_urls
from .registry import FileRegistry

logger = logging.getLogger(__name__)

MAX_PORT = 65535


class SessionState(str, enum.Enum):
	STOPPED = "stopped"
	RUNNING = "running"


class SessionController:
	def __init__(
		self,
		engine: ServingEngine,
		registry: FileRegistry = None,
		handles: HandleStore = None,
		credentials: CredentialStore = None,
	) -> None:
		self.engine = engine
		self.registry = registry if registry is not None else FileRegistry()
		self.handles = handles if handles is not None else HandleStore()
		self.credentials = credentials if credentials is not None else CredentialStore()
		self.session_state_changed = Signal("session_state_changed")
		self.files_changed = Signal("files_changed")
		self._lock = threading.RLock()
		self._credentials_lock = threading.Lock()
		self._state = SessionState.STOPPED
		self._port: Optional[int] = None

	# --- State ---

	@property
	def state(self) -> SessionState:
		return self._state

	@property
	def is_running(self) -> bool:
		return self._state is SessionState.RUNNING

	@property
	def port(self) -> Optional[int]:
		return self._port

	# --- Session lifecycle ---

	def start_session(self, port: int) -> bool:
		with self._lock:
			if self.is_running:
				logger.warning("Server already running")
				return True
			if not self.credentials.get().is_complete():
				logger.error("Refusing to start: username and password are required")
				return False
			if not 0 < port <= MAX_PORT:
				logger.error(f"Refusing to start: invalid port {port}")
				return False
			# Files that failed to open earlier are not retried.
			pending = [
				f for f in self.registry.list()
				if self.handles.get(f.id) is None and not self.handles.has_failed(f.id)
			]

		failed = sum(1 for f in pending if not self._open_handle(f).ok)
		if failed:
			logger.warning(f"{failed} of {len(pending)} files could not be opened")

		with self._lock:
			if self.is_running:
				return True
			credentials = self.credentials.get()
			if not credentials.is_complete():
				logger.error("Refusing to start: credentials were cleared")
				return False
			ok = self._engine_start(port, credentials, self._engine_files())
			if ok:
				self._state = SessionState.RUNNING
				self._port = port
				logger.info(f"Server started on port {port}")
			else:
				logger.error("Failed to start server")
			current_port = self._port

		self.session_state_changed.emit(running=ok, port=current_port, ok=ok)
		return ok

	def stop_session(self) -> None:
		with self._lock:
			if not self.is_running:
				return
			try:
				self.engine.stop()
			except Exception:
				logger.exception("Engine failed to stop cleanly")
			self._state = SessionState.STOPPED
			port = self._port
			logger.info("Server stopped")
		self.session_state_changed.emit(running=False, port=port, ok=True)

	def set_credentials(self, username: str, password: str) -> bool:
		"""Replace the credentials; a running engine picks them up immediately.

		Returns False and leaves the current credentials in place when the
		session is running and either the username or the password is empty,
		or when the running engine rejects the new pair. Otherwise returns True.
		"""
		with self._credentials_lock:
			with self._lock:
				if self.is_running and not Credentials(username, password).is_complete():
					logger.warning("Ignoring empty credentials while the server is running")
					return False
				previous = self.credentials.get()
				self.credentials.set(username, password)
				running = self.is_running

			# Hashing the password can be slow; keep the controller lock free.
			if running and not self._engine_call("set_credentials", username, password):
				with self._lock:
					if self.credentials.get() == (username, password):
						self.credentials.set(*previous)
				logger.error("Engine rejected the new credentials; keeping the previous ones")
				return False
		logger.info("Credentials set")
		return True

	# --- Files ---

	def add_file(self, locator: Any, display_name: str, size: int) -> SharedFile:
		with self._lock:
			file = self.registry.add(locator, display_name, size)
			running = self.is_running

		if running:
			self._open_handle(file)
			with self._lock:
				if self.is_running and self.registry.contains(file.id):
					self._engine_call("add_file", file.id, file.display_name, self.handles.get(file.id), file.size)

		self.files_changed.emit(count=len(self.registry))
		return file

	def remove_file(self, file: Union[SharedFile, str]) -> bool:
		file_id = file if isinstance(file, str) else file.id
		with self._lock:
			if not self.registry.contains(file_id):
				return False
			if self.is_running:
				self._engine_call("remove_file", file_id)
			self.handles.release(file_id)
			self.registry.remove(file_id)
			count = len(self.registry)
		self.files_changed.emit(count=count)
		return True

	def clear_files(self) -> None:
		with self._lock:
			if self.is_running:
				self._engine_call("clear_files")
			released = self.handles.release_all()
			self.registry.clear()
		logger.info(f"Released {released} handles")
		self.files_changed.emit(count=0)

	def list_files(self) -> List[SharedFile]:
		return self.registry.list()

	def unservable_files(self) -> List[SharedFile]:
		"""Registered files whose source could not be opened."""
		return [f for f in self.registry.list() if self.handles.has_failed(f.id)]

	# --- Presentation helpers ---

	def status_text(self) -> str:
		if not self.is_running:
			return "Stopped"
		return f"Serving {len(self.registry)} files on port {self._port}"

	def share_urls(self) -> List[str]:
		if not self.is_running:
			return []
		return share_urls(self._port)

	def close(self) -> None:
		"""Stop the session and release every handle."""
		self.stop_session()
		with self._lock:
			self.handles.release_all()
			self.registry.clear()

	def __enter__(self) -> "SessionController":
		return self

	def __exit__(self, *exc) -> None:
		self.close()

	# --- Internals ---

	def _open_handle(self, file: SharedFile) -> OpenResult:
		result = self.handles.open(file)
		with self._lock:
			if not self.registry.contains(file.id):
				# Removed while the open was in flight.
				self.handles.release(file.id)
		return result

	def _engine_files(self) -> List[EngineFile]:
		return [
			EngineFile(f.id, f.display_name, self.handles.get(f.id), f.size)
			for f in self.registry.list()
		]

	def _engine_start(self, port: int, credentials: Credentials, files: List[EngineFile]) -> bool:
		try:
			return bool(self.engine.start(port, credentials, files))
		except Exception:
			logger.exception("Engine raised during start")
			return False

	def _engine_call(self, name: str, *args) -> bool:
		try:
			getattr(self.engine, name)(*args)
		except Exception:
			logger.exception(f"Engine {name} failed")
			return False
		return True
