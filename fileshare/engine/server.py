import logging
import os
import socket
import threading
import time
from typing import Iterable, Optional

import uvicorn
from fastapi import FastAPI

from ..config import settings
from ..models import Credentials, EngineFile, HandleOrPath
from .auth import AuthMiddleware, BasicAuth
from .base import ServingEngine
from .files import EngineFileTable
from . import routes

logger = logging.getLogger(__name__)


def create_app(files: EngineFileTable, auth: BasicAuth, chunk_size: int = None) -> FastAPI:
	app = FastAPI(title="LAN File Share", version="0.1.0", docs_url=None, redoc_url=None, openapi_url=None)
	app.state.files = files
	app.state.auth = auth
	app.state.chunk_size = chunk_size or settings.chunk_size

	app.add_middleware(AuthMiddleware)
	app.include_router(routes.router)
	return app


def bind_socket(host: str, port: int) -> socket.socket:
	sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
	try:
		if os.name != "nt":
			# Windows would let a second socket bind the same port
			sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		sock.bind((host, port))
		sock.listen(128)
	except OSError:
		sock.close()
		raise
	sock.set_inheritable(True)
	return sock


class HttpServingEngine(ServingEngine):
	"""Serves the file table over HTTP with uvicorn on a background thread.

	Credentials live as long as the engine. The file table, and the descriptors
	it owns, is rebuilt by every start and dropped by stop.
	"""

	def __init__(
		self,
		host: str = None,
		chunk_size: int = None,
		realm: str = None,
		bcrypt_rounds: int = None,
		start_timeout: float = None,
	) -> None:
		self.host = host or settings.host
		self.start_timeout = start_timeout or settings.start_timeout
		self.files = EngineFileTable()
		self.auth = BasicAuth(realm=realm, rounds=bcrypt_rounds)
		self.app = create_app(self.files, self.auth, chunk_size)
		self._lock = threading.Lock()
		self._server: Optional[uvicorn.Server] = None
		self._thread: Optional[threading.Thread] = None
		self._socket: Optional[socket.socket] = None
		self._port: Optional[int] = None

	@property
	def port(self) -> Optional[int]:
		return self._port

	def is_running(self) -> bool:
		server, thread = self._server, self._thread
		return bool(server and thread and thread.is_alive() and server.started and not server.should_exit)

	def start(self, port: int, credentials: Credentials, files: Iterable[EngineFile]) -> bool:
		with self._lock:
			if self.is_running():
				logger.info("Server already running")
				return True

			self.auth.set_credentials(credentials.username, credentials.password)
			self.files.replace(files)

			try:
				sock = bind_socket(self.host, port)
			except OSError as e:
				logger.error(f"Failed to bind {self.host}:{port}: {e}")
				self.files.clear()
				return False

			config = uvicorn.Config(
				self.app,
				host=self.host,
				port=port,
				log_config=None,
				access_log=False,
				lifespan="off",
			)
			server = uvicorn.Server(config)
			thread = threading.Thread(
				target=server.run,
				kwargs={"sockets": [sock]},
				name=f"fileshare-http-{port}",
				daemon=True,
			)
			thread.start()

			deadline = time.monotonic() + self.start_timeout
			while not server.started:
				if not thread.is_alive() or time.monotonic() > deadline:
					logger.error(f"Server on port {port} did not start")
					server.should_exit = True
					thread.join(timeout=self.start_timeout)
					sock.close()
					self.files.clear()
					return False
				time.sleep(0.02)

			self._server, self._thread, self._socket = server, thread, sock
			self._port = sock.getsockname()[1]
			logger.info(f"Server started on port {self._port}")
			return True

	def stop(self) -> None:
		with self._lock:
			server, thread, sock = self._server, self._thread, self._socket
			if server is None:
				return
			server.should_exit = True
			if thread is not None:
				thread.join(timeout=self.start_timeout)
				if thread.is_alive():
					server.force_exit = True
					thread.join(timeout=self.start_timeout)
			if sock is not None:
				sock.close()
			self._server = self._thread = self._socket = None
			self.files.clear()
			logger.info("Server stopped")

	def set_credentials(self, username: str, password: str) -> None:
		self.auth.set_credentials(username, password)

	def add_file(self, file_id: str, display_name: str, handle_or_path: HandleOrPath, size: int) -> None:
		self.files.add(EngineFile(file_id, display_name, handle_or_path, size))

	def remove_file(self, file_id: str) -> None:
		self.files.remove(file_id)

	def clear_files(self) -> None:
		self.files.clear()
