"""Storage module - where the plan document lives."""

from .base import DocumentBackend, DocumentNotFoundError
from .file import FileBackend
from .git import GitBackend, GitCommandError, resolve_actor_name

__all__ = [
	"DocumentBackend",
	"DocumentNotFoundError",
	"FileBackend",
	"GitBackend",
	"GitCommandError",
	"resolve_actor_name",
]
