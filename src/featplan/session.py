"""
Plan Session - mutating board operations and write-origin tracking.

Every mutation reloads PLAN.md from the active backend, edits a throwaway
Board, writes it back and appends an audit entry. The session counts its
own outstanding writes so the change listener can tell a self-inflicted
notification from an edit made by someone else:

	count > 0  -> our write landed; decrement and refresh the view
	count == 0 -> external edit; diff against the last snapshot, log every
	              changed card under the external actor, refresh

The counter assumes one notification per write, delivered in order.

The counter only knows about writes made by this session. Every write also
records a digest of the written document in a marker file shared by all
featplan processes of the workspace, so a watching session can recognise a
one-shot CLI write (already logged by the process that made it) and skip it.
"""

import hashlib
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from .board.audit_log import AuditLog
from .board.codec import decode, encode
from .board.diff import diff_board, diff_card
from .board.models import Action, Board, Card, LogEntry, slugify
from .config import PLAN_PATH, Config
from .messages import (
	AddCardMessage,
	DeleteCardMessage,
	GetLogMessage,
	InitProjectMessage,
	LogDataMessage,
	MoveFeatureMessage,
	OutgoingMessage,
	PanelMessage,
	ReadyMessage,
	UpdateCardMessage,
	UpdateViewMessage,
	parse_message,
)
from .storage.base import DocumentBackend, DocumentNotFoundError
from .storage.file import FileBackend
from .storage.git import GitBackend, resolve_actor_name

logger = logging.getLogger(__name__)

Publisher = Callable[[OutgoingMessage], Union[Awaitable[None], None]]


def _digest(content: str) -> str:
	return hashlib.sha256(content.encode("utf-8")).hexdigest()


class DocumentEvent(str, Enum):
	"""Change notifications about the plan document."""
	CHANGED = "changed"
	CREATED = "created"
	DELETED = "deleted"


@dataclass
class OperationResult:
	"""Outcome of a mutating operation, reported once at the operation boundary."""

	ok: bool
	message: str = ""
	level: str = "info"  # info | warning | error
	card_id: Optional[str] = None

	@classmethod
	def warning(cls, message: str) -> "OperationResult":
		return cls(ok=False, message=message, level="warning")

	@classmethod
	def error(cls, message: str) -> "OperationResult":
		return cls(ok=False, message=message, level="error")

	def to_dict(self) -> dict[str, Any]:
		data: dict[str, Any] = {"success": self.ok}
		if self.ok:
			data["message"] = self.message
		else:
			data[self.level] = self.message
		if self.card_id:
			data["card_id"] = self.card_id
		return data


class PlanSession:
	"""
	One active board session: backend, audit log, write counter and snapshot.

	Usage:
		session = await create_session(config)
		await session.refresh()
		result = await session.move_card("add-login", "Done")

		# wired to a file watcher
		await session.on_document_changed()
	"""

	def __init__(
		self,
		backend: DocumentBackend,
		audit_log: AuditLog,
		actor_name: str,
		external_actor: str = "Claude",
		execute_dir: Optional[Path] = None,
		publish: Optional[Publisher] = None,
		write_marker: Optional[Path] = None,
	):
		self.backend = backend
		self.audit_log = audit_log
		self.actor_name = actor_name
		self.external_actor = external_actor
		self.execute_dir = Path(execute_dir) if execute_dir else None
		self.publish = publish
		self.write_marker = Path(write_marker) if write_marker else None

		self.internal_write_count = 0
		self.last_snapshot: Optional[Board] = None

		self._handlers: dict[type, Callable[[Any], Awaitable[Any]]] = {
			ReadyMessage: self._on_ready,
			InitProjectMessage: self._on_init_project,
			MoveFeatureMessage: self._on_move_feature,
			UpdateCardMessage: self._on_update_card,
			AddCardMessage: self._on_add_card,
			DeleteCardMessage: self._on_delete_card,
			GetLogMessage: self._on_get_log,
		}

	@property
	def user_actor(self) -> str:
		return f"User ({self.actor_name})"

	# -------------------- loading --------------------

	async def _read_content(self) -> str:
		"""Current document text. A missing document reads as ''."""
		try:
			return await self.backend.read_document()
		except DocumentNotFoundError:
			return ""

	async def _read_board(self) -> Board:
		return decode(await self._read_content())

	def _annotate_docs(self, board: Board) -> None:
		for _, card in board.iter_cards():
			card.has_doc = bool(self.execute_dir) and (self.execute_dir / f"{card.id}.md").exists()

	def _snapshot(self, content: str) -> Board:
		board = decode(content)
		self._annotate_docs(board)
		self.last_snapshot = board
		return board

	async def load(self) -> Board:
		"""Load a fresh board and replace the snapshot cache."""
		return self._snapshot(await self._read_content())

	async def _emit(self, message: OutgoingMessage) -> None:
		if self.publish is None:
			return
		result = self.publish(message)
		if inspect.isawaitable(result):
			await result

	async def refresh(self) -> Optional[Board]:
		"""Reload and push the board to the view. Load failures are logged, not raised."""
		try:
			board = await self.load()
		except Exception as e:
			logger.error(f"Failed to load plan document: {e}")
			return None
		await self._emit(UpdateViewMessage(data=board))
		return board

	async def _write_board(self, board: Board) -> None:
		"""Persist a board, counting the write as self-inflicted."""
		content = encode(board)
		self.internal_write_count += 1
		try:
			# Marker first: a watcher in another process may read the
			# document as soon as the backend write lands
			self._record_write(content)
			await self.backend.write_document(content)
		except Exception:
			# A failed write produces no notification to consume the count
			self.internal_write_count -= 1
			raise

	def _record_write(self, content: str) -> None:
		if self.write_marker is None:
			return
		try:
			self.write_marker.parent.mkdir(parents=True, exist_ok=True)
			self.write_marker.write_text(_digest(content), encoding="utf-8")
		except OSError as e:
			logger.warning(f"Failed to record write marker {self.write_marker}: {e}")

	def _written_by_featplan(self, content: str) -> bool:
		"""True if the document is exactly what a featplan session last wrote."""
		if self.write_marker is None:
			return False
		try:
			recorded = self.write_marker.read_text(encoding="utf-8").strip()
		except OSError:
			return False
		return recorded == _digest(content)

	# -------------------- change notifications --------------------

	async def on_document_event(self, event: DocumentEvent) -> None:
		if event == DocumentEvent.CHANGED:
			await self.on_document_changed()
		elif event == DocumentEvent.CREATED:
			await self.on_document_created()
		else:
			await self.on_document_deleted()

	def _consume_own_write(self) -> bool:
		if self.internal_write_count > 0:
			self.internal_write_count -= 1
			logger.debug(f"Own write observed ({self.internal_write_count} outstanding)")
			return True
		return False

	async def on_document_changed(self) -> None:
		"""Handle a change notification for the plan document."""
		if self._consume_own_write():
			await self.refresh()
			return

		previous = self.last_snapshot
		try:
			content = await self._read_content()
			board = self._snapshot(content)
		except Exception as e:
			logger.error(f"Failed to load plan document: {e}")
			return

		if self._written_by_featplan(content):
			logger.debug("Document matches the last featplan write, not logging it")
		elif previous is not None:
			await self._log_external_changes(previous, board)

		await self._emit(UpdateViewMessage(data=board))

	async def on_document_created(self) -> None:
		"""Reload only. A write of ours that created the document is used up here."""
		self._consume_own_write()
		await self.refresh()

	async def on_document_deleted(self) -> None:
		await self.refresh()

	async def _log_external_changes(self, previous: Board, current: Board) -> int:
		"""Log every card that differs between two snapshots. Never raises."""
		logged = 0
		try:
			for change in diff_board(previous, current):
				if await self.audit_log.append(
					change.card_id, change.card_title, self.external_actor, change.entries,
				):
					logged += 1
		except Exception as e:
			logger.warning(f"Failed to log external changes: {e}")
		if logged:
			logger.info(f"Logged external edits to {logged} card(s)")
		return logged

	# -------------------- mutating operations --------------------

	async def init_board(self) -> OperationResult:
		"""Write a board with the default columns if no document exists yet."""
		try:
			try:
				await self.backend.read_document()
				return OperationResult.warning("Plan document already exists.")
			except DocumentNotFoundError:
				pass
			await self._write_board(Board.default())
		except Exception as e:
			logger.error(f"Failed to init plan document: {e}")
			return OperationResult.error(f"Failed to init project: {e}")
		await self.refresh()
		return OperationResult(ok=True, message="Plan document created.")

	async def move_card(self, card_id: str, new_status: str) -> OperationResult:
		"""Move a card to the end of another column (matched by id or title)."""
		try:
			board = await self._read_board()

			found = board.find_card(card_id)
			if not found:
				return OperationResult.warning(f'Card "{card_id}" not found.')
			from_column, idx = found

			target = board.find_column(new_status)
			if not target:
				return OperationResult.warning(f'Column "{new_status}" not found.')

			card = from_column.cards.pop(idx)
			target.cards.append(card)

			await self._write_board(board)
		except Exception as e:
			logger.error(f"Failed to move card {card_id}: {e}")
			return OperationResult.error(f"Failed to move feature: {e}")

		if from_column.id != target.id:
			await self.audit_log.append(
				card.id, card.title, self.user_actor,
				[f"Status changed: `{from_column.title}` → `{target.title}`"],
			)
		await self.refresh()
		return OperationResult(ok=True, message=f"Moved to {target.title}.", card_id=card.id)

	async def update_card(self, updated: Card) -> OperationResult:
		"""
		Replace a card's fields in place, matched by its current id.

		The id is re-derived from the (possibly new) title, as the document
		does on the next load; the card's audit log follows the new id.
		"""
		try:
			board = await self._read_board()

			found = board.find_card(updated.id)
			if not found:
				return OperationResult.warning(f'Card "{updated.id}" not found.')
			column, idx = found

			old_card = column.cards[idx]
			new_card = updated.model_copy(update={
				"id": slugify(updated.title.strip()),
				"title": updated.title.strip(),
				"has_doc": False,
			})
			if not new_card.title:
				return OperationResult.warning("Card title cannot be empty.")
			column.cards[idx] = new_card

			await self._write_board(board)
		except Exception as e:
			logger.error(f"Failed to update card {updated.id}: {e}")
			return OperationResult.error(f"Failed to update card: {e}")

		entries = diff_card(old_card, new_card)
		await self.audit_log.append(old_card.id, new_card.title, self.user_actor, entries)
		if new_card.id != old_card.id:
			await self.audit_log.rename(old_card.id, new_card.id)
		await self.refresh()
		return OperationResult(ok=True, message="Card updated.", card_id=new_card.id)

	async def edit_card(
		self,
		card_id: str,
		title: Optional[str] = None,
		branch: Optional[str] = None,
		description: Optional[str] = None,
		actions: Optional[list[Action]] = None,
		append_actions: Optional[list[Action]] = None,
	) -> OperationResult:
		"""
		Patch selected fields of a card.

		None keeps a field; '' clears branch or description. `actions`
		replaces the action list, `append_actions` adds to the end of it.
		"""
		try:
			board = await self._read_board()
		except Exception as e:
			logger.error(f"Failed to load plan document: {e}")
			return OperationResult.error(f"Failed to update card: {e}")

		found = board.find_card(card_id)
		if not found:
			return OperationResult.warning(f'Card "{card_id}" not found.')
		column, idx = found
		current = column.cards[idx]

		changes: dict[str, Any] = {}
		if title:
			changes["title"] = title
		if branch is not None:
			changes["branch"] = branch.strip() or None
		if description is not None:
			changes["description"] = description.strip() or None
		if actions is not None or append_actions:
			base = list(current.actions) if actions is None else list(actions)
			changes["actions"] = base + list(append_actions or [])
		return await self.update_card(current.model_copy(update=changes))

	async def add_card(self, column_id: str, title: str) -> OperationResult:
		"""Append a new card to a column."""
		title = title.strip()
		if not title:
			return OperationResult.warning("Card title cannot be empty.")
		try:
			board = await self._read_board()

			column = board.find_column(column_id)
			if not column:
				return OperationResult.warning(f'Column "{column_id}" not found.')

			card = Card.from_title(title)
			column.cards.append(card)

			await self._write_board(board)
		except Exception as e:
			logger.error(f"Failed to add card {title!r}: {e}")
			return OperationResult.error(f"Failed to add card: {e}")

		await self.audit_log.append(
			card.id, card.title, self.user_actor, [f"Card created in `{column.title}`"],
		)
		await self.refresh()
		return OperationResult(ok=True, message=f"Added to {column.title}.", card_id=card.id)

	async def delete_card(self, card_id: str) -> OperationResult:
		"""Remove a card. Its audit log is kept."""
		try:
			board = await self._read_board()

			found = board.find_card(card_id)
			if not found:
				return OperationResult.warning(f'Card "{card_id}" not found.')
			column, idx = found
			card = column.cards.pop(idx)

			await self._write_board(board)
		except Exception as e:
			logger.error(f"Failed to delete card {card_id}: {e}")
			return OperationResult.error(f"Failed to delete card: {e}")

		await self.audit_log.append(
			card.id, card.title, self.user_actor, [f"Card deleted from `{column.title}`"],
		)
		await self.refresh()
		return OperationResult(ok=True, message="Card deleted.", card_id=card.id)

	async def get_log(self, card_id: str) -> list[LogEntry]:
		entries = await self.audit_log.read(card_id)
		await self._emit(LogDataMessage(card_id=card_id, entries=entries))
		return entries

	# -------------------- panel messages --------------------

	async def handle_message(self, message: Union[dict, PanelMessage]) -> OperationResult:
		"""Dispatch one panel message to its handler."""
		if isinstance(message, dict):
			try:
				message = parse_message(message)
			except ValidationError as e:
				logger.warning(f"Ignoring malformed panel message: {e}")
				return OperationResult.warning(f"Unknown or malformed message: {message.get('type')}")

		handler = self._handlers.get(type(message))
		if handler is None:
			return OperationResult.warning(f"No handler for {type(message).__name__}")
		return await handler(message)

	async def _on_ready(self, msg: ReadyMessage) -> OperationResult:
		board = await self.refresh()
		if board is None:
			return OperationResult.error("Failed to load PLAN.md.")
		return OperationResult(ok=True, message="Board loaded.")

	async def _on_init_project(self, msg: InitProjectMessage) -> OperationResult:
		return await self.init_board()

	async def _on_move_feature(self, msg: MoveFeatureMessage) -> OperationResult:
		return await self.move_card(msg.feature_id, msg.new_status)

	async def _on_update_card(self, msg: UpdateCardMessage) -> OperationResult:
		return await self.update_card(msg.card)

	async def _on_add_card(self, msg: AddCardMessage) -> OperationResult:
		return await self.add_card(msg.column_id, msg.title)

	async def _on_delete_card(self, msg: DeleteCardMessage) -> OperationResult:
		return await self.delete_card(msg.card_id)

	async def _on_get_log(self, msg: GetLogMessage) -> OperationResult:
		entries = await self.get_log(msg.card_id)
		return OperationResult(ok=True, message=f"{len(entries)} log entries.", card_id=msg.card_id)


def create_backend(config: Config) -> DocumentBackend:
	"""Build the document backend selected by config."""
	if config.backend == "git":
		return GitBackend(
			config.workspace_root,
			branch=config.storage_branch,
			path=PLAN_PATH,
			compare_and_swap=config.compare_and_swap,
		)
	return FileBackend(config.plan_path)


async def create_session(config: Config, publish: Optional[Publisher] = None) -> PlanSession:
	"""Open the backend, resolve the acting user and build a session."""
	backend = create_backend(config)
	await backend.open()
	actor_name = await resolve_actor_name(config.workspace_root)
	return PlanSession(
		backend,
		AuditLog(config.logs_dir),
		actor_name,
		external_actor=config.external_actor,
		execute_dir=config.execute_dir,
		publish=publish,
		write_marker=config.write_marker,
	)
