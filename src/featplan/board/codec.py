"""
Plan document codec.

Reads and writes the Markdown layout of PLAN.md:

	# Feature Plan

	## #Backlog
	### Add login page
	git-branch: feat/login
	Free-form description lines.
	> build | Scaffold the form | done

Descriptions are not escaped: a description line starting with ``##``,
``###``, ``git-branch:`` or ``>`` is read back as structure.
"""

import re
from typing import Optional

from .models import Action, Board, Card, Column

DOCUMENT_TITLE = "# Feature Plan"

_COLUMN_RE = re.compile(r"^##\s+#(.+)$")
_CARD_RE = re.compile(r"^###\s+(.+)$")
_BRANCH_RE = re.compile(r"^git-branch:\s*(.+)$")
_ACTION_RE = re.compile(r"^>\s?(.*)$")


def parse_action(body: str) -> Action:
	"""Parse the part of an action line after ``>``. Missing fields become ''."""
	parts = [p.strip() for p in body.split("|")]
	if len(parts) > 3:
		return Action(type=parts[0], description=" | ".join(parts[1:-1]), status=parts[-1])
	parts += [""] * (3 - len(parts))
	return Action(type=parts[0], description=parts[1], status=parts[2])


class _Decoder:
	"""Line-by-line accumulator for decode()."""

	def __init__(self):
		self.board = Board.default()
		self.columns = {c.title.lower(): c for c in self.board.columns}
		self.column: Optional[Column] = None
		self.card: Optional[Card] = None
		self.desc_lines: list[str] = []

	def flush_card(self) -> None:
		if self.card is not None and self.column is not None:
			self.card.description = "\n".join(self.desc_lines).strip() or None
			self.column.cards.append(self.card)
		self.card = None
		self.desc_lines = []

	def open_column(self, title: str) -> None:
		self.flush_card()
		column = self.columns.get(title.lower())
		if column is None:
			column = Column.from_title(title)
			self.board.columns.append(column)
			self.columns[title.lower()] = column
		self.column = column

	def feed(self, line: str) -> None:
		match = _COLUMN_RE.match(line)
		if match:
			self.open_column(match.group(1).strip())
			return

		match = _CARD_RE.match(line)
		if match:
			self.flush_card()
			self.card = Card.from_title(match.group(1))
			return

		if self.card is None:
			return

		match = _BRANCH_RE.match(line)
		if match:
			self.card.branch = match.group(1).strip()
			return

		match = _ACTION_RE.match(line)
		if match:
			self.card.actions.append(parse_action(match.group(1)))
			return

		self.desc_lines.append(line)


def decode(content: str) -> Board:
	"""Parse plan document text into a Board. Never rejects input."""
	decoder = _Decoder()
	for line in content.splitlines():
		decoder.feed(line)
	decoder.flush_card()
	return decoder.board


def encode_action(action: Action) -> str:
	return f"> {action.type} | {action.description} | {action.status}"


def encode(board: Board) -> str:
	"""Serialize a Board back into plan document text. has_doc is not written."""
	lines = [DOCUMENT_TITLE, ""]

	for column in board.columns:
		lines.append(f"## #{column.title}")
		for card in column.cards:
			lines.append(f"### {card.title}")
			if card.branch:
				lines.append(f"git-branch: {card.branch}")
			if card.description:
				lines.append(card.description)
			for action in card.actions:
				lines.append(encode_action(action))
			lines.append("")

	return "\n".join(lines)
