"""Shared test fixtures and helpers for featplan tests."""

import subprocess
from pathlib import Path
from typing import Callable, Optional

from featplan.board.audit_log import AuditLog
from featplan.board.models import Action, Board, Card, Column
from featplan.config import Config
from featplan.session import PlanSession
from featplan.storage.file import FileBackend

SAMPLE_PLAN = """# Feature Plan

## #Backlog
### Add login page
git-branch: feat/login
Build the login form.
Second line.
> build | Scaffold the form | done
> test | Cover validation | open

### Dark mode

## #In Progress
### Export CSV

## #Icebox
### Someday idea
"""


def init_git_repo(path: Path) -> None:
	"""Create a real git repo with an initial commit."""
	path.mkdir(parents=True, exist_ok=True)
	subprocess.run(["git", "init"], cwd=str(path), capture_output=True, check=True)
	subprocess.run(["git", "config", "user.email", "test@test.com"], cwd=str(path), capture_output=True)
	subprocess.run(["git", "config", "user.name", "Test"], cwd=str(path), capture_output=True)
	(path / "README.md").write_text("# Test\n")
	subprocess.run(["git", "add", "README.md"], cwd=str(path), capture_output=True, check=True)
	subprocess.run(["git", "commit", "-m", "init"], cwd=str(path), capture_output=True, check=True)


def git(path: Path, *args: str) -> str:
	"""Run git in a test repo and return stripped stdout."""
	result = subprocess.run(["git", *args], cwd=str(path), capture_output=True, text=True, check=True)
	return result.stdout.strip()


def capture_tools(config, register_fn: Callable) -> dict:
	"""Register tools on a mock MCP and return the captured tool functions.

	Args:
		config: Config object to pass to the registration function
		register_fn: The registration function (e.g., register_board_tools)

	Returns:
		Dict mapping tool name to the tool function
	"""
	captured = {}

	class MockMCP:
		def tool(self):
			def decorator(fn):
				captured[fn.__name__] = fn
				return fn
			return decorator

	register_fn(MockMCP(), config)
	return captured


def make_config(tmp_path: Path, **kwargs) -> Config:
	"""Config rooted in tmp_path, with app dirs kept out of the real home."""
	workspace = kwargs.pop("workspace_root", tmp_path / "workspace")
	workspace.mkdir(parents=True, exist_ok=True)
	return Config(
		config_dir=tmp_path / "config",
		data_dir=tmp_path / "data",
		workspace_root=workspace,
		**kwargs,
	)


def make_session(
	workspace: Path,
	content: Optional[str] = None,
	publish=None,
	actor: str = "alice",
) -> PlanSession:
	"""File-backed session over workspace/.feature, optionally seeding PLAN.md."""
	plan_path = workspace / ".feature" / "PLAN.md"
	if content is not None:
		plan_path.parent.mkdir(parents=True, exist_ok=True)
		plan_path.write_text(content, encoding="utf-8")
	return PlanSession(
		FileBackend(plan_path),
		AuditLog(workspace / ".feature" / "logs"),
		actor,
		execute_dir=workspace / ".feature" / "execute",
		publish=publish,
		write_marker=workspace / ".feature" / ".last-write",
	)


def make_board(*columns: tuple[str, list[Card]]) -> Board:
	"""Build a board from (column title, cards) pairs."""
	return Board(columns=[
		Column(id=Column.from_title(title).id, title=title, cards=list(cards))
		for title, cards in columns
	])


def make_card(
	title: str,
	branch: Optional[str] = None,
	description: Optional[str] = None,
	actions: Optional[list[Action]] = None,
) -> Card:
	card = Card.from_title(title)
	card.branch = branch
	card.description = description
	card.actions = list(actions or [])
	return card
