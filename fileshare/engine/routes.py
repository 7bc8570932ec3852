import logging
import mimetypes
import os
import threading
from typing import Callable, Iterator, List
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse, StreamingResponse
from pydantic import BaseModel
from starlette.background import BackgroundTask

from .files import EngineFileTable

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")
INDEX_HTML = os.path.join(STATIC_DIR, "index.html")

mimetypes.add_type("application/vnd.android.package-archive", ".apk")
mimetypes.add_type("video/x-matroska", ".mkv")
mimetypes.add_type("application/x-7z-compressed", ".7z")

router = APIRouter()


class FileInfo(BaseModel):
	id: str
	name: str
	size: int


def get_mime_type(filename: str) -> str:
	mime, _ = mimetypes.guess_type(filename, strict=False)
	return mime or "application/octet-stream"


def content_disposition(filename: str) -> str:
	quoted = quote(filename)
	if quoted != filename:
		return f"attachment; filename*=utf-8''{quoted}"
	return f'attachment; filename="{filename}"'


class DescriptorCloser:
	"""Closes a descriptor exactly once, from whichever side gets there first."""

	def __init__(self, fd: int) -> None:
		self.fd = fd
		self._lock = threading.Lock()
		self._closed = False

	def __call__(self) -> None:
		with self._lock:
			if self._closed:
				return
			self._closed = True
		os.close(self.fd)


def iter_descriptor(fd: int, size: int, chunk_size: int, close: Callable[[], None] = None) -> Iterator[bytes]:
	"""Read up to *size* bytes from *fd* with positional reads, then close it."""
	try:
		offset = 0
		while offset < size:
			chunk = os.pread(fd, min(chunk_size, size - offset), offset)
			if not chunk:
				break
			offset += len(chunk)
			yield chunk
	finally:
		if close is not None:
			close()
		else:
			os.close(fd)


def _table(request: Request) -> EngineFileTable:
	return request.app.state.files


@router.get("/", include_in_schema=False)
@router.get("/index.html", include_in_schema=False)
def index_page():
	return FileResponse(INDEX_HTML, media_type="text/html; charset=utf-8")


@router.get("/api/files", response_model=List[FileInfo])
def list_files(request: Request):
	return [FileInfo(id=f.id, name=f.display_name, size=f.size) for f in _table(request).snapshot()]


@router.get("/download/{file_id}")
def download_file(file_id: str, request: Request):
	entry = _table(request).get(file_id)
	if entry is None:
		raise HTTPException(status_code=404, detail="File not found")
	mime_type = get_mime_type(entry.display_name)
	source = entry.handle_or_path

	if isinstance(source, (str, os.PathLike)):
		if not os.path.isfile(source):
			raise HTTPException(status_code=404, detail="File not found")
		return FileResponse(source, media_type=mime_type, filename=entry.display_name)

	if source is None:
		logger.error(f"No valid handle or path for file: {file_id}")
		raise HTTPException(status_code=404, detail="File not found")

	try:
		fd = _table(request).open_descriptor(file_id)
	except OSError:
		fd = None
	if fd is None:
		logger.error(f"No open descriptor for file: {file_id}")
		raise HTTPException(status_code=404, detail="File not found")

	# The background task covers responses whose body never starts streaming.
	close = DescriptorCloser(fd)
	chunk_size = request.app.state.chunk_size
	return StreamingResponse(
		iter_descriptor(fd, entry.size, chunk_size, close),
		media_type=mime_type,
		headers={
			"Content-Length": str(entry.size),
			"Content-Disposition": content_disposition(entry.display_name),
		},
		background=BackgroundTask(close),
	)
