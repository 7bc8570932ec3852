"""Command line entry point: share local files until interrupted."""

import argparse
import logging
import os
import threading
from getpass import getpass
from typing import List, Optional

from .config import settings
from .engine import HttpServingEngine
from .logging_config import setup_logging
from .session import SessionController

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="fileshare", description="Share local files over HTTP on the local network")
	parser.add_argument("paths", nargs="+", help="Files to share")
	parser.add_argument("--host", default=settings.host)
	parser.add_argument("--port", type=int, default=settings.port)
	parser.add_argument("-u", "--username", default=settings.username)
	parser.add_argument("-p", "--password", default=settings.password)
	parser.add_argument("--log-file", default=settings.log_file)
	return parser


def add_paths(controller: SessionController, paths: List[str]) -> int:
	"""Register every readable path; returns how many were skipped."""
	skipped = 0
	for path in paths:
		try:
			size = os.stat(path).st_size
		except OSError as e:
			logger.error(f"Skipping {path}: {e}")
			skipped += 1
			continue
		if not os.path.isfile(path):
			logger.error(f"Skipping {path}: not a regular file")
			skipped += 1
			continue
		controller.add_file(os.path.abspath(path), os.path.basename(path), size)
	return skipped


def main(argv: Optional[List[str]] = None, stop_event: threading.Event = None) -> int:
	args = build_parser().parse_args(argv)
	setup_logging(log_file=args.log_file)

	username = args.username
	password = args.password or (getpass("Password: ") if username else "")
	if not username or not password:
		logger.error("Please enter username and password")
		return 1

	controller = SessionController(HttpServingEngine(host=args.host))
	with controller:
		add_paths(controller, args.paths)
		controller.set_credentials(username, password)
		if not controller.start_session(args.port):
			logger.error("Failed to start server")
			return 1
		for url in controller.share_urls():
			print(f"Running at {url}")
		print(controller.status_text())

		stop_event = stop_event or threading.Event()
		try:
			while not stop_event.wait(0.5):
				pass
		except KeyboardInterrupt:
			print("Stopping...")
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
