"""Board management tools."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..board.codec import parse_action
from ..board.models import Action
from ..config import Config
from ..session import PlanSession, create_session
from ..watcher import DocumentWatcher

logger = logging.getLogger(__name__)


def _parse_actions(actions: str) -> list[Action]:
	"""Parse 'type | description | status' entries separated by semicolons."""
	return [parse_action(a) for a in actions.split(";") if a.strip()]


class SessionHolder:
	"""
	Lazily opened session shared by every tool.

	With watch=True the holder also watches the plan document and feeds the
	same session, so tool writes and external edits go through one write
	counter. The session is opened on first use, inside the server's loop.
	"""

	def __init__(self, config: Config, watch: bool = False):
		self.config = config
		self.watch = watch
		self.session: Optional[PlanSession] = None
		self.watcher: Optional[DocumentWatcher] = None

	async def get(self) -> PlanSession:
		if self.session is None:
			session = await create_session(self.config)
			await session.load()
			if self.watch:
				self.watcher = DocumentWatcher(
					session.backend.watch_path,
					session.on_document_event,
					debounce_seconds=self.config.debounce_seconds,
				)
				self.watcher.start()
			self.session = session
		return self.session

	def close(self) -> None:
		if self.watcher is not None:
			self.watcher.stop()
			self.watcher = None
			logger.debug("Stopped plan document watcher")


def register_board_tools(mcp: FastMCP, config: Config, holder: Optional[SessionHolder] = None) -> None:
	"""Register feature board tools. All tools share one session."""
	holder = holder or SessionHolder(config)

	async def _session() -> PlanSession:
		return await holder.get()

	@mcp.tool()
	async def get_board() -> str:
		"""
		Get the current feature board (columns, cards and actions).
		"""
		session = await _session()
		board = await session.load()
		return json.dumps({
			"board": board.model_dump(by_alias=True),
			"card_count": board.card_count(),
		}, indent=2)

	@mcp.tool()
	async def init_board() -> str:
		"""
		Create PLAN.md with the default status columns if it does not exist.
		"""
		session = await _session()
		result = await session.init_board()
		return json.dumps(result.to_dict(), indent=2)

	@mcp.tool()
	async def add_card(column: str, title: str) -> str:
		"""
		Add a card to the end of a column.

		Args:
			column: Column id or title (e.g., "backlog" or "In Progress")
			title: Card title; the card id is derived from it
		"""
		session = await _session()
		result = await session.add_card(column, title)
		return json.dumps(result.to_dict(), indent=2)

	@mcp.tool()
	async def move_card(card_id: str, column: str) -> str:
		"""
		Move a card to the end of another column.

		Args:
			card_id: Card id (slug of its title)
			column: Target column id or title
		"""
		session = await _session()
		result = await session.move_card(card_id, column)
		return json.dumps(result.to_dict(), indent=2)

	@mcp.tool()
	async def update_card(
		card_id: str,
		title: str = "",
		branch: Optional[str] = None,
		description: Optional[str] = None,
		actions: Optional[str] = None,
	) -> str:
		"""
		Edit a card's fields. Omitted fields keep their current value.

		Args:
			card_id: Card id to edit
			title: New title (renaming changes the card id)
			branch: git branch ("" clears it)
			description: Description ("" clears it)
			actions: Semicolon-separated "type | description | status" entries ("" clears them)
		"""
		session = await _session()
		result = await session.edit_card(
			card_id,
			title=title or None,
			branch=branch,
			description=description,
			actions=None if actions is None else _parse_actions(actions),
		)
		return json.dumps(result.to_dict(), indent=2)

	@mcp.tool()
	async def delete_card(card_id: str) -> str:
		"""
		Delete a card. Its history log is kept.

		Args:
			card_id: Card id to delete
		"""
		session = await _session()
		result = await session.delete_card(card_id)
		return json.dumps(result.to_dict(), indent=2)

	@mcp.tool()
	async def get_card_log(card_id: str) -> str:
		"""
		Get a card's change history, newest first.

		Args:
			card_id: Card id
		"""
		session = await _session()
		entries = await session.get_log(card_id)
		return json.dumps({
			"card_id": card_id,
			"entries": [e.model_dump() for e in entries],
		}, indent=2)
