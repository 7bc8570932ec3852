import base64
import binascii
import hashlib
import logging
import secrets
import threading
from typing import Optional, Set

import bcrypt
from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import HTMLResponse

from ..config import settings

logger = logging.getLogger(__name__)

UNAUTHORIZED_HTML = "<html><body><h1>401 Unauthorized</h1><p>Authentication required.</p></body></html>"


class BasicAuth:
	"""HTTP Basic authentication against the most recently set credentials.

	Only a bcrypt hash of the password is kept. The password is reduced to a
	base64 SHA-256 digest first, so bcrypt never sees more than its 72-byte
	limit and passwords of any length compare exactly. Header values that already
	passed verification are remembered until the credentials change.
	"""

	def __init__(self, realm: str = None, rounds: int = None) -> None:
		self.realm = realm or settings.realm
		self.rounds = rounds or settings.bcrypt_rounds
		self._lock = threading.Lock()
		self._username = ""
		self._password_hash = b""
		self._generation = 0
		self._verified: Set[str] = set()

	def set_credentials(self, username: str, password: str) -> None:
		password_hash = bcrypt.hashpw(_digest(password), bcrypt.gensalt(rounds=self.rounds)) if password else b""
		with self._lock:
			self._username = username
			self._password_hash = password_hash
			self._generation += 1
			self._verified = set()
		logger.info(f"Credentials set for user: {username}")

	def required(self) -> bool:
		with self._lock:
			return bool(self._username) or bool(self._password_hash)

	def challenge(self) -> str:
		return f'Basic realm="{self.realm}"'

	def check(self, header: Optional[str]) -> bool:
		with self._lock:
			username, password_hash = self._username, self._password_hash
			generation = self._generation
			if not username and not password_hash:
				# No credentials configured, nothing to check
				return True
			if header and header in self._verified:
				return True

		supplied = _decode_basic(header)
		if supplied is None:
			logger.info("Invalid auth header format")
			return False
		user, password = supplied
		ok = secrets.compare_digest(user.encode("utf-8"), username.encode("utf-8"))
		if password_hash:
			ok = bcrypt.checkpw(_digest(password), password_hash) and ok
		else:
			ok = ok and password == ""
		if not ok:
			logger.info(f"Authentication failed for user: {user}")
			return False
		with self._lock:
			if self._generation == generation:
				self._verified.add(header)
		return True


def _digest(password: str) -> bytes:
	return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def _decode_basic(header: Optional[str]):
	"""Return (username, password) from a Basic Authorization header, or None."""
	if not header:
		return None
	scheme, _, encoded = header.partition(" ")
	if scheme.lower() != "basic":
		return None
	try:
		decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
	except (binascii.Error, UnicodeDecodeError):
		return None
	if ":" not in decoded:
		return None
	user, _, password = decoded.partition(":")
	return user, password


class AuthMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next):
		auth: BasicAuth = request.app.state.auth
		if auth.required() and not await run_in_threadpool(auth.check, request.headers.get("authorization")):
			return HTMLResponse(
				UNAUTHORIZED_HTML,
				status_code=401,
				headers={"WWW-Authenticate": auth.challenge()},
			)
		return await call_next(request)
