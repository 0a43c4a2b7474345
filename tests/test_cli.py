"""Tests for the featplan CLI."""

import asyncio

import pytest

from featplan import cli
from featplan.board.codec import decode
from featplan.config import load_config
from featplan.session import create_session

from .helpers import SAMPLE_PLAN


@pytest.fixture
def workspace(tmp_path, monkeypatch):
	"""Workspace with a seeded PLAN.md and app dirs kept under tmp_path."""
	monkeypatch.setenv("FEATPLAN_CONFIG_DIR", str(tmp_path / "config"))
	monkeypatch.setenv("FEATPLAN_DATA_DIR", str(tmp_path / "data"))
	monkeypatch.delenv("FEATPLAN_BACKEND", raising=False)
	monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)

	ws = tmp_path / "ws"
	(ws / ".feature").mkdir(parents=True)
	(ws / ".feature" / "PLAN.md").write_text(SAMPLE_PLAN)
	return ws


def _run(workspace, *argv):
	cli.main(["--workspace", str(workspace), *argv])


def _board(workspace):
	return decode((workspace / ".feature" / "PLAN.md").read_text())


class TestParser:
	def test_no_command_exits(self, capsys):
		with pytest.raises(SystemExit) as exc_info:
			cli.main([])
		assert exc_info.value.code == 1

	def test_edit_arguments(self):
		args = cli.build_parser().parse_args([
			"edit", "card", "--action", "a | b | c", "--action", "d", "--clear-actions",
		])
		assert args.action == ["a | b | c", "d"]
		assert args.clear_actions is True
		assert args.func is cli.cmd_edit

	def test_backend_choices(self, capsys):
		with pytest.raises(SystemExit):
			cli.build_parser().parse_args(["--backend", "s3", "show"])


class TestCommands:
	def test_show(self, workspace, capsys):
		_run(workspace, "show")
		out = capsys.readouterr().out
		assert "Add login page" in out
		assert "Icebox" in out
		assert "Ready" not in out

	def test_show_all_includes_empty_columns(self, workspace, capsys):
		_run(workspace, "show", "--all")
		assert "Ready" in capsys.readouterr().out

	def test_show_summary(self, workspace, capsys):
		_run(workspace, "show", "--summary")
		out = capsys.readouterr().out
		assert "Backlog" in out
		assert "Column" in out

	def test_init_on_existing_plan_fails(self, workspace, capsys):
		with pytest.raises(SystemExit) as exc_info:
			_run(workspace, "init")
		assert exc_info.value.code == 1
		assert "already exists" in capsys.readouterr().out

	def test_init_fresh(self, tmp_path, workspace, capsys):
		fresh = tmp_path / "fresh"
		fresh.mkdir()
		_run(fresh, "init")
		assert len(_board(fresh).columns) == 7

	def test_add_move_delete(self, workspace, capsys):
		_run(workspace, "add", "Ready", "Write docs")
		_run(workspace, "move", "write-docs", "Done")
		assert [c.id for c in _board(workspace).find_column("Done").cards] == ["write-docs"]

		_run(workspace, "delete", "write-docs")
		assert _board(workspace).find_card("write-docs") is None
		assert "Card deleted." in capsys.readouterr().out

	def test_move_unknown_card_exits(self, workspace, capsys):
		with pytest.raises(SystemExit):
			_run(workspace, "move", "ghost", "Done")
		assert "ghost" in capsys.readouterr().out

	def test_edit(self, workspace):
		_run(
			workspace, "edit", "dark-mode",
			"--branch", "feat/dark",
			"--description", "Follow the OS setting",
			"--action", "design | palette | open",
		)
		column, idx = _board(workspace).find_card("dark-mode")
		card = column.cards[idx]
		assert card.branch == "feat/dark"
		assert card.description == "Follow the OS setting"
		assert [a.type for a in card.actions] == ["design"]

	def test_edit_clear_actions(self, workspace):
		_run(workspace, "edit", "add-login-page", "--clear-actions")
		column, idx = _board(workspace).find_card("add-login-page")
		assert column.cards[idx].actions == []

	def test_log(self, workspace, capsys):
		_run(workspace, "move", "dark-mode", "Review")
		capsys.readouterr()

		_run(workspace, "log", "dark-mode")
		out = capsys.readouterr().out
		assert "Log: dark-mode" in out
		assert "Status changed" in out

	def test_log_empty(self, workspace, capsys):
		_run(workspace, "log", "export-csv")
		assert "No history for export-csv." in capsys.readouterr().out


class TestWatchingAlongsideCommands:
	def test_command_write_is_logged_once(self, workspace):
		watching = asyncio.run(create_session(load_config(workspace_root=str(workspace))))
		asyncio.run(watching.refresh())

		_run(workspace, "move", "dark-mode", "Done")
		asyncio.run(watching.on_document_changed())

		entries = asyncio.run(watching.get_log("dark-mode"))
		assert len(entries) == 1
		assert entries[0].actor == watching.user_actor
		assert entries[0].items == ["Status changed: `Backlog` → `Done`"]

	def test_hand_edit_after_command_is_logged(self, workspace):
		watching = asyncio.run(create_session(load_config(workspace_root=str(workspace))))
		asyncio.run(watching.refresh())

		_run(workspace, "add", "Ready", "Write docs")
		asyncio.run(watching.on_document_changed())
		plan = workspace / ".feature" / "PLAN.md"
		plan.write_text(plan.read_text().replace("### Write docs", "### Write docs\ngit-branch: docs"))
		asyncio.run(watching.on_document_changed())

		entries = asyncio.run(watching.get_log("write-docs"))
		assert [e.actor for e in entries] == ["Claude", watching.user_actor]
		assert entries[0].items == ["Branch set: `docs`"]
