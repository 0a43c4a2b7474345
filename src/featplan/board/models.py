"""
Board Models - Pydantic schemas for the feature board.

Defines the columns, cards and actions decoded from PLAN.md, plus the
audit log entries and change sets produced while tracking edits.
"""

import re
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field

KNOWN_STATUSES = ["Backlog", "Ready", "In Progress", "Review", "Testing", "Done", "Blocked"]

_WHITESPACE_RE = re.compile(r"\s+")


def slugify(title: str) -> str:
	"""Derive an id from a title: lowercase, whitespace runs become hyphens."""
	return _WHITESPACE_RE.sub("-", title.lower())


class _WireModel(BaseModel):
	"""Base for models shared with the panel (camelCase on the wire)."""
	model_config = ConfigDict(populate_by_name=True)


class Action(_WireModel):
	"""A sub-step of a card."""
	type: str = Field(default="", description="Kind of step (e.g. 'build', 'test')")
	description: str = Field(default="")
	status: str = Field(default="")


class Card(_WireModel):
	"""A single trackable unit of work."""
	id: str = Field(description="Slug of the title")
	title: str
	branch: Optional[str] = Field(default=None, description="git-branch field")
	description: Optional[str] = Field(default=None)
	actions: list[Action] = Field(default_factory=list)
	has_doc: bool = Field(
		default=False,
		alias="hasDoc",
		description="Derived on load: an execute document exists for this card",
	)

	@classmethod
	def from_title(cls, title: str) -> "Card":
		title = title.strip()
		return cls(id=slugify(title), title=title)


class Column(_WireModel):
	"""A named, ordered bucket of cards."""
	id: str
	title: str
	cards: list[Card] = Field(default_factory=list)

	@classmethod
	def from_title(cls, title: str) -> "Column":
		return cls(id=slugify(title), title=title)


class Board(_WireModel):
	"""
	The full board decoded from the plan document.

	Column order and card order are document order. A Board is rebuilt on
	every load and never kept as the source of truth.
	"""
	columns: list[Column] = Field(default_factory=list)

	@classmethod
	def default(cls) -> "Board":
		"""A board holding the canonical status columns, all empty."""
		return cls(columns=[Column.from_title(s) for s in KNOWN_STATUSES])

	def iter_cards(self) -> Iterator[tuple[Column, Card]]:
		for column in self.columns:
			for card in column.cards:
				yield column, card

	def find_card(self, card_id: str) -> Optional[tuple[Column, int]]:
		"""Locate the first card with this id as (column, index)."""
		for column in self.columns:
			for idx, card in enumerate(column.cards):
				if card.id == card_id:
					return column, idx
		return None

	def find_column(self, key: str) -> Optional[Column]:
		"""Match a column by id, or by title case-insensitively."""
		lowered = key.strip().lower()
		for column in self.columns:
			if column.id == key or column.title.lower() == lowered:
				return column
		return None

	def card_count(self) -> int:
		return sum(len(c.cards) for c in self.columns)


class LogEntry(_WireModel):
	"""One audit block: who changed a card, when, and what."""
	model_config = ConfigDict(frozen=True, populate_by_name=True)

	timestamp: str
	actor: str
	items: list[str] = Field(default_factory=list)


class CardChange(_WireModel):
	"""Per-card change set produced by the diff engine. Never persisted."""
	card_id: str = Field(alias="cardId")
	card_title: str = Field(alias="cardTitle")
	entries: list[str] = Field(default_factory=list)
