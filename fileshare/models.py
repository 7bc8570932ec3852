from typing import Any, NamedTuple, Optional, Union, BinaryIO

from pydantic import BaseModel, ConfigDict


class SharedFile(BaseModel):
	"""A file registered for sharing. Never mutated after creation."""

	model_config = ConfigDict(frozen=True)

	id: str
	display_name: str
	locator: Any
	size: int


class Credentials(NamedTuple):
	username: str
	password: str

	def is_complete(self) -> bool:
		return bool(self.username) and bool(self.password)


HandleOrPath = Optional[Union[BinaryIO, str]]


class EngineFile(NamedTuple):
	"""What the serving engine knows about one shared file."""

	id: str
	display_name: str
	handle_or_path: HandleOrPath
	size: int
