import threading

from .models import Credentials


class CredentialStore:
	"""Holds the current username/password pair.

	The pair is swapped as a single immutable tuple, so readers never see a
	half-updated value. Emptiness is not validated here.
	"""

	def __init__(self, username: str = "", password: str = "") -> None:
		self._lock = threading.Lock()
		self._current = Credentials(username, password)

	def set(self, username: str, password: str) -> Credentials:
		credentials = Credentials(username, password)
		with self._lock:
			self._current = credentials
		return credentials

	def get(self) -> Credentials:
		with self._lock:
			return self._current
