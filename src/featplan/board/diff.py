"""
Diff engine - turns two board snapshots into readable change entries.

Entries are Markdown fragments written verbatim into the audit log.
Actions are compared by position, so inserting an action at the front is
reported as a change to every action after it.
"""

from typing import Optional

from .models import Action, Board, Card, CardChange

DESCRIPTION_PREVIEW_CHARS = 100


def truncate(text: str, max_len: int = DESCRIPTION_PREVIEW_CHARS) -> str:
	"""One-line preview: whitespace runs (newlines included) collapse to a space."""
	text = " ".join(text.split())
	return text[:max_len] + "…" if len(text) > max_len else text


def diff_actions(old_actions: list[Action], new_actions: list[Action]) -> list[str]:
	"""Compare two action lists index by index."""
	entries: list[str] = []
	for i in range(max(len(old_actions), len(new_actions))):
		old: Optional[Action] = old_actions[i] if i < len(old_actions) else None
		new: Optional[Action] = new_actions[i] if i < len(new_actions) else None

		if old is None and new is not None:
			entries.append(f"Action added: `{new.type}` — {new.description} [{new.status}]")
		elif old is not None and new is None:
			entries.append(f"Action removed: `{old.type}` — {old.description}")
		elif old is not None and new is not None:
			if old.type != new.type:
				entries.append(f"Action type changed: `{old.type}` → `{new.type}`")
			if old.status != new.status:
				entries.append(f"Action `{new.type}` status: `{old.status}` → `{new.status}`")
			if old.description != new.description:
				entries.append(f"Action `{new.type}` description: {new.description}")
	return entries


def diff_card(old: Card, new: Card) -> list[str]:
	"""Diff the editable fields of one card. has_doc is ignored."""
	entries: list[str] = []

	if old.title != new.title:
		entries.append(f"Title: `{old.title}` → `{new.title}`")

	if (old.branch or "") != (new.branch or ""):
		entries.append(f"Branch set: `{new.branch}`" if new.branch else "Branch removed")

	if (old.description or "") != (new.description or ""):
		if not new.description:
			entries.append("Description cleared")
		else:
			entries.append(f"Description: {truncate(new.description)}")

	if old.actions != new.actions:
		entries.extend(diff_actions(old.actions, new.actions))

	return entries


def _index(board: Board) -> dict[str, tuple[Card, str]]:
	# Later duplicates win, matching a plain map insert
	return {card.id: (card, column.title) for column, card in board.iter_cards()}


def diff_board(old: Board, new: Board) -> list[CardChange]:
	"""
	Diff two snapshots into per-card change sets.

	Order: cards created in `new`, cards removed from `old`, then cards
	present in both whose column or fields differ.
	"""
	old_map = _index(old)
	new_map = _index(new)
	changes: list[CardChange] = []

	for card_id, (card, column_title) in new_map.items():
		if card_id not in old_map:
			changes.append(CardChange(
				card_id=card_id,
				card_title=card.title,
				entries=[f"Card created in `{column_title}`"],
			))

	for card_id, (card, column_title) in old_map.items():
		if card_id not in new_map:
			changes.append(CardChange(
				card_id=card_id,
				card_title=card.title,
				entries=[f"Card removed from `{column_title}`"],
			))

	for card_id, (new_card, new_column) in new_map.items():
		if card_id not in old_map:
			continue
		old_card, old_column = old_map[card_id]

		entries: list[str] = []
		if old_column != new_column:
			entries.append(f"Status changed: `{old_column}` → `{new_column}`")
		entries.extend(diff_card(old_card, new_card))

		if entries:
			changes.append(CardChange(card_id=card_id, card_title=new_card.title, entries=entries))

	return changes
