"""
Plan document watcher.

Watchdog reports filesystem events on its own thread. Events for the
watched path are handed to the session's event loop and debounced there,
so an editor's truncate-then-write save turns into a single notification.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .session import DocumentEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[DocumentEvent], Awaitable[None]]


def _merge(pending: Optional[DocumentEvent], incoming: DocumentEvent) -> DocumentEvent:
	"""Collapse a burst of events into the one that describes its end state."""
	if pending is None:
		return incoming
	if incoming == DocumentEvent.DELETED:
		return DocumentEvent.DELETED
	if pending == DocumentEvent.DELETED and incoming == DocumentEvent.CREATED:
		# delete + create is how some editors save
		return DocumentEvent.CHANGED
	if pending == DocumentEvent.CREATED:
		return DocumentEvent.CREATED
	return incoming


class DocumentEventHandler(FileSystemEventHandler):
	"""
	Forwards events for one file to an asyncio callback.

	Key behaviors:
	- Ignores every path but the target (the observer watches its directory)
	- Debounces bursts of events into one callback per burst
	- Treats a move onto the target as a change (atomic-rename saves)
	"""

	def __init__(
		self,
		target: Path,
		loop: asyncio.AbstractEventLoop,
		callback: EventCallback,
		debounce_seconds: float = 0.3,
	):
		super().__init__()
		self.target = os.path.abspath(str(target))
		self.loop = loop
		self.callback = callback
		self.debounce_seconds = debounce_seconds

		self._pending: Optional[DocumentEvent] = None
		self._timer: Optional[asyncio.TimerHandle] = None

	def _matches(self, path) -> bool:
		if isinstance(path, bytes):
			path = os.fsdecode(path)
		return os.path.abspath(path) == self.target

	def _schedule(self, kind: DocumentEvent) -> None:
		# Called on the watchdog thread
		self.loop.call_soon_threadsafe(self._arm, kind)

	def _arm(self, kind: DocumentEvent) -> None:
		self._pending = _merge(self._pending, kind)
		if self._timer is not None:
			self._timer.cancel()
		self._timer = self.loop.call_later(self.debounce_seconds, self._fire)

	def _fire(self) -> None:
		kind = self._pending
		self._pending = None
		self._timer = None
		if kind is not None:
			logger.debug(f"Plan document {kind.value}")
			self.loop.create_task(self.callback(kind))

	def on_modified(self, event: FileSystemEvent) -> None:
		if not event.is_directory and self._matches(event.src_path):
			self._schedule(DocumentEvent.CHANGED)

	def on_created(self, event: FileSystemEvent) -> None:
		if not event.is_directory and self._matches(event.src_path):
			self._schedule(DocumentEvent.CREATED)

	def on_deleted(self, event: FileSystemEvent) -> None:
		if not event.is_directory and self._matches(event.src_path):
			self._schedule(DocumentEvent.DELETED)

	def on_moved(self, event: FileSystemEvent) -> None:
		if event.is_directory:
			return
		if self._matches(event.dest_path):
			self._schedule(DocumentEvent.CHANGED)
		elif self._matches(event.src_path):
			self._schedule(DocumentEvent.DELETED)


class DocumentWatcher:
	"""
	Watches a single file and feeds a session's change handlers.

	Usage:
		watcher = DocumentWatcher(session.backend.watch_path, session.on_document_event)
		watcher.start()
		...
		watcher.stop()
	"""

	def __init__(
		self,
		path: Path,
		callback: EventCallback,
		debounce_seconds: float = 0.3,
		loop: Optional[asyncio.AbstractEventLoop] = None,
	):
		self.path = Path(path)
		self.callback = callback
		self.debounce_seconds = debounce_seconds
		self.loop = loop
		self._observer: Optional[Observer] = None

	def start(self) -> None:
		"""Start watching. Must be called from a running event loop unless loop was given."""
		loop = self.loop or asyncio.get_running_loop()
		handler = DocumentEventHandler(self.path, loop, self.callback, self.debounce_seconds)
		self.path.parent.mkdir(parents=True, exist_ok=True)

		self._observer = Observer()
		self._observer.schedule(handler, str(self.path.parent), recursive=False)
		self._observer.start()
		logger.info(f"Watching {self.path}")

	def stop(self) -> None:
		if self._observer is not None:
			self._observer.stop()
			self._observer.join(timeout=5)
			self._observer = None

	@property
	def running(self) -> bool:
		return self._observer is not None and self._observer.is_alive()
