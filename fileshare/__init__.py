from .credentials import CredentialStore
from .handles import HandleOpenError, HandleStore, OpenResult
from .models import Credentials, EngineFile, SharedFile
from .registry import FileRegistry
from .session import SessionController, SessionState

__version__ = "0.1.0"

__all__ = [
	"CredentialStore",
	"Credentials",
	"EngineFile",
	"FileRegistry",
	"HandleOpenError",
	"HandleStore",
	"OpenResult",
	"SessionController",
	"SessionState",
	"SharedFile",
]
