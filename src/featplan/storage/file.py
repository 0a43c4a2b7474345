"""Working-tree backend: PLAN.md as a plain file."""

import logging
from pathlib import Path

from .base import DocumentNotFoundError

logger = logging.getLogger(__name__)


class FileBackend:
	"""Stores the plan document directly in the workspace."""

	name = "file"

	def __init__(self, path: Path):
		self.path = Path(path)

	@property
	def watch_path(self) -> Path:
		return self.path

	async def open(self) -> None:
		pass

	async def read_document(self) -> str:
		try:
			return self.path.read_text(encoding="utf-8")
		except FileNotFoundError:
			raise DocumentNotFoundError(f"Plan document not found: {self.path}")

	async def write_document(self, content: str) -> None:
		self.path.parent.mkdir(parents=True, exist_ok=True)
		self.path.write_text(content, encoding="utf-8")
		logger.debug(f"Wrote {len(content)} chars to {self.path}")
