"""Document backend contract shared by the file and git stores."""

from pathlib import Path
from typing import Protocol


class DocumentNotFoundError(Exception):
	"""Raised when the plan document does not exist in the backend."""
	pass


class DocumentBackend(Protocol):
	"""Read/write contract for wherever PLAN.md lives."""

	name: str

	@property
	def watch_path(self) -> Path:
		"""Filesystem path whose changes mean the document changed."""
		...

	async def open(self) -> None:
		"""Prepare the backend (idempotent)."""
		...

	async def read_document(self) -> str:
		"""Return the document text. Raises DocumentNotFoundError if absent."""
		...

	async def write_document(self, content: str) -> None:
		"""Replace the document text."""
		...
