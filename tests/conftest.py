import socket
from typing import Iterable, List

import httpx
import pytest

from fileshare.config import settings
from fileshare.engine.base import ServingEngine
from fileshare.models import Credentials, EngineFile


class FakeEngine(ServingEngine):
	"""Records every control call instead of serving anything."""

	def __init__(self, start_result: bool = True) -> None:
		self.start_result = start_result
		self.calls: List[tuple] = []
		self.running = False
		self.credentials = None
		self.files = {}

	def start(self, port: int, credentials: Credentials, files: Iterable[EngineFile]) -> bool:
		files = list(files)
		self.calls.append(("start", port))
		self.credentials = credentials
		self.files = {f.id: f for f in files}
		self.running = self.start_result
		return self.start_result

	def stop(self) -> None:
		self.calls.append(("stop",))
		self.running = False

	def set_credentials(self, username, password) -> None:
		self.calls.append(("set_credentials", username))
		self.credentials = Credentials(username, password)

	def add_file(self, file_id, display_name, handle_or_path, size) -> None:
		self.calls.append(("add_file", file_id))
		self.files[file_id] = EngineFile(file_id, display_name, handle_or_path, size)

	def remove_file(self, file_id) -> None:
		self.calls.append(("remove_file", file_id))
		self.files.pop(file_id, None)

	def clear_files(self) -> None:
		self.calls.append(("clear_files",))
		self.files = {}

	def is_running(self) -> bool:
		return self.running

	def count(self, name: str) -> int:
		return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture(autouse=True)
def cheap_bcrypt(monkeypatch):
	monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
def engine():
	return FakeEngine()


@pytest.fixture
def make_file(tmp_path):
	def _make(name: str, content: bytes = b"") -> str:
		path = tmp_path / name
		path.write_bytes(content)
		return str(path)
	return _make


@pytest.fixture
def free_port():
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
		s.bind(("127.0.0.1", 0))
		return s.getsockname()[1]


def http_get(url: str, auth=None) -> httpx.Response:
	# Loopback requests must not go through a proxy from the environment
	with httpx.Client(trust_env=False, timeout=10) as client:
		return client.get(url, auth=auth)
