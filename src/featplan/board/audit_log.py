"""
Per-card audit log.

Each card gets `.feature/logs/<card-id>.md`:

	# Log: Add login page

	## 2026-01-05 14:02:11 — User (alice)
	- Status changed: `Backlog` → `In Progress`

Blocks are appended oldest-first and read back newest-first. Writing a log
must never break the operation that triggered it, so append() swallows
every error.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from .models import LogEntry

logger = logging.getLogger(__name__)

_BLOCK_SPLIT_RE = re.compile(r"\n(?=## )")
_HEADER_RE = re.compile(r"^## ([^\n]+?) — ([^\n]+)\n(.*)", re.DOTALL)
_ITEM_PREFIX = "- "


def format_timestamp(moment: datetime | None = None) -> str:
	"""UTC timestamp with second precision: 'YYYY-MM-DD HH:MM:SS'."""
	moment = moment or datetime.now(timezone.utc)
	return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_block(actor: str, entries: list[str], timestamp: str | None = None) -> str:
	"""Render one change block, including its leading newline."""
	items = "\n".join(f"{_ITEM_PREFIX}{e}" for e in entries)
	return f"\n## {timestamp or format_timestamp()} — {actor}\n{items}\n"


def parse_log(content: str) -> list[LogEntry]:
	"""Parse log file text into entries, newest first. Blocks without items are dropped."""
	entries: list[LogEntry] = []
	for block in _BLOCK_SPLIT_RE.split(content):
		match = _HEADER_RE.match(block)
		if not match:
			continue
		timestamp, actor, body = match.groups()
		items = [
			line[len(_ITEM_PREFIX):].strip()
			for line in body.split("\n")
			if line.startswith(_ITEM_PREFIX)
		]
		items = [i for i in items if i]
		if items:
			entries.append(LogEntry(timestamp=timestamp, actor=actor.strip(), items=items))
	entries.reverse()
	return entries


class AuditLog:
	"""
	Append-only change history, one Markdown file per card.

	Usage:
		log = AuditLog(Path(".feature/logs"))
		await log.append("add-login", "Add login", "User (alice)", ["Card created in `Backlog`"])
		entries = await log.read("add-login")
	"""

	def __init__(self, logs_dir: Path):
		self.logs_dir = Path(logs_dir)

	def path_for(self, card_id: str) -> Path:
		return self.logs_dir / f"{card_id}.md"

	async def append(
		self,
		card_id: str,
		card_title: str,
		actor: str,
		entries: list[str],
	) -> bool:
		"""
		Append a change block for a card.

		Args:
			card_id: Card id (log file name)
			card_title: Title used for the header of a new log file
			actor: Who made the change
			entries: Change descriptions; nothing is written when empty

		Returns:
			True if a block was written
		"""
		if not entries:
			return False
		try:
			self.logs_dir.mkdir(parents=True, exist_ok=True)
			log_path = self.path_for(card_id)
			if log_path.exists():
				content = log_path.read_text(encoding="utf-8")
			else:
				content = f"# Log: {card_title}\n"
			log_path.write_text(content + format_block(actor, entries), encoding="utf-8")
			return True
		except Exception as e:
			logger.warning(f"Failed to write audit log for {card_id}: {e}")
			return False

	async def read(self, card_id: str) -> list[LogEntry]:
		"""Read a card's history, newest first. Missing or unreadable file -> []."""
		log_path = self.path_for(card_id)
		try:
			content = log_path.read_text(encoding="utf-8")
		except FileNotFoundError:
			return []
		except OSError as e:
			logger.warning(f"Failed to read audit log for {card_id}: {e}")
			return []
		return parse_log(content)

	async def rename(self, old_id: str, new_id: str) -> bool:
		"""Carry a card's history over to a new id. Never overwrites an existing log."""
		if old_id == new_id:
			return False
		try:
			old_path = self.path_for(old_id)
			new_path = self.path_for(new_id)
			if not old_path.exists() or new_path.exists():
				return False
			old_path.rename(new_path)
			logger.info(f"Moved audit log {old_id} -> {new_id}")
			return True
		except OSError as e:
			logger.warning(f"Failed to move audit log {old_id} -> {new_id}: {e}")
			return False
