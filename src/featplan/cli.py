"""CLI for featplan: show, edit and watch the feature board, or serve it over MCP."""

import argparse
import asyncio
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .board.codec import parse_action
from .config import BACKENDS, Config, load_config
from .logging_config import setup_logging
from .messages import OutgoingMessage, UpdateViewMessage
from .session import OperationResult, PlanSession, create_session
from .visualizer import render_board, render_board_summary, render_log
from .watcher import DocumentWatcher

console = Console()


def _load_config(args: argparse.Namespace) -> Config:
	config = getattr(args, "config", None)
	if config is None:
		config = load_config(
			workspace_root=getattr(args, "workspace", None),
			backend=getattr(args, "backend", None),
			log_level=getattr(args, "log_level", None),
		)
	return config


def _report(result: OperationResult) -> None:
	"""Print an operation result and exit non-zero on failure."""
	if result.ok:
		console.print(f"[green]{escape(result.message)}[/green]")
		return
	style = "yellow" if result.level == "warning" else "red"
	console.print(f"[{style}]{escape(result.message)}[/{style}]")
	sys.exit(1)


async def _open(args: argparse.Namespace) -> PlanSession:
	return await create_session(_load_config(args))


def cmd_show(args: argparse.Namespace) -> None:
	"""Print the board."""
	async def run():
		session = await _open(args)
		return await session.load()

	board = asyncio.run(run())
	if args.summary:
		render_board_summary(board, console)
	else:
		render_board(board, console, show_empty=args.all)


def cmd_init(args: argparse.Namespace) -> None:
	"""Create PLAN.md with the default columns."""
	async def run():
		session = await _open(args)
		return await session.init_board()

	_report(asyncio.run(run()))


def cmd_add(args: argparse.Namespace) -> None:
	"""Add a card to a column."""
	async def run():
		session = await _open(args)
		return await session.add_card(args.column, args.title)

	_report(asyncio.run(run()))


def cmd_move(args: argparse.Namespace) -> None:
	"""Move a card to another column."""
	async def run():
		session = await _open(args)
		return await session.move_card(args.card_id, args.column)

	_report(asyncio.run(run()))


def cmd_edit(args: argparse.Namespace) -> None:
	"""Edit a card's fields."""
	async def run():
		session = await _open(args)
		return await session.edit_card(
			args.card_id,
			title=args.title,
			branch=args.branch,
			description=args.description,
			actions=[] if args.clear_actions else None,
			append_actions=[parse_action(a) for a in args.action or []],
		)

	_report(asyncio.run(run()))


def cmd_delete(args: argparse.Namespace) -> None:
	"""Delete a card."""
	async def run():
		session = await _open(args)
		return await session.delete_card(args.card_id)

	_report(asyncio.run(run()))


def cmd_log(args: argparse.Namespace) -> None:
	"""Print a card's history."""
	async def run():
		session = await _open(args)
		return await session.get_log(args.card_id)

	entries = asyncio.run(run())
	render_log(args.card_id, entries[: args.limit] if args.limit else entries, console)


async def _watch(config: Config) -> None:
	"""Render the board on every change until interrupted."""
	def publish(message: OutgoingMessage) -> None:
		if isinstance(message, UpdateViewMessage):
			console.clear()
			render_board(message.data, console)

	session = await create_session(config, publish=publish)
	await session.refresh()

	watcher = DocumentWatcher(
		session.backend.watch_path,
		session.on_document_event,
		debounce_seconds=config.debounce_seconds,
	)
	watcher.start()
	try:
		await asyncio.Event().wait()
	finally:
		watcher.stop()


def cmd_watch(args: argparse.Namespace) -> None:
	"""Watch PLAN.md and log external edits."""
	config = _load_config(args)
	try:
		asyncio.run(_watch(config))
	except KeyboardInterrupt:
		console.print("[dim]Stopped.[/dim]")


def cmd_serve(args: argparse.Namespace) -> None:
	"""Run the MCP server (stdio transport), logging external edits while it runs."""
	from .server import build_server
	from .tools import SessionHolder

	config = _load_config(args)
	holder = SessionHolder(config, watch=True)
	try:
		build_server(config, holder).run()
	finally:
		holder.close()


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="featplan",
		description="Feature board kept in .feature/PLAN.md, with per-card change history",
	)
	parser.add_argument("--workspace", type=str, default=None, help="Workspace root (default: cwd)")
	parser.add_argument("--backend", choices=BACKENDS, default=None, help="Where PLAN.md is stored")
	parser.add_argument("--log-level", type=str, default=None, help="DEBUG, INFO, WARNING, ERROR")
	subparsers = parser.add_subparsers(dest="command")

	# show
	show_parser = subparsers.add_parser("show", help="Show the board")
	show_parser.add_argument("--summary", action="store_true", help="Card counts per column")
	show_parser.add_argument("--all", action="store_true", help="Include empty columns")
	show_parser.set_defaults(func=cmd_show)

	# init
	init_parser = subparsers.add_parser("init", help="Create PLAN.md")
	init_parser.set_defaults(func=cmd_init)

	# add
	add_parser = subparsers.add_parser("add", help="Add a card")
	add_parser.add_argument("column", help="Column id or title")
	add_parser.add_argument("title", help="Card title")
	add_parser.set_defaults(func=cmd_add)

	# move
	move_parser = subparsers.add_parser("move", help="Move a card to another column")
	move_parser.add_argument("card_id")
	move_parser.add_argument("column", help="Column id or title")
	move_parser.set_defaults(func=cmd_move)

	# edit
	edit_parser = subparsers.add_parser("edit", help="Edit a card")
	edit_parser.add_argument("card_id")
	edit_parser.add_argument("--title", type=str, default=None)
	edit_parser.add_argument("--branch", type=str, default=None, help="'' clears the branch")
	edit_parser.add_argument("--description", type=str, default=None, help="'' clears the description")
	edit_parser.add_argument(
		"--action",
		action="append",
		default=None,
		help="Append an action: 'type | description | status' (repeatable)",
	)
	edit_parser.add_argument("--clear-actions", action="store_true", help="Remove existing actions first")
	edit_parser.set_defaults(func=cmd_edit)

	# delete
	delete_parser = subparsers.add_parser("delete", help="Delete a card")
	delete_parser.add_argument("card_id")
	delete_parser.set_defaults(func=cmd_delete)

	# log
	log_parser = subparsers.add_parser("log", help="Show a card's history")
	log_parser.add_argument("card_id")
	log_parser.add_argument("--limit", type=int, default=0, help="Max entries (0 = all)")
	log_parser.set_defaults(func=cmd_log)

	# watch
	watch_parser = subparsers.add_parser("watch", help="Live board; logs external edits")
	watch_parser.set_defaults(func=cmd_watch)

	# serve
	serve_parser = subparsers.add_parser("serve", help="Run MCP server (stdio)")
	serve_parser.set_defaults(func=cmd_serve)

	return parser


def main(argv: Optional[list[str]] = None) -> None:
	"""CLI entry point."""
	parser = build_parser()
	args = parser.parse_args(argv)

	if not args.command:
		parser.print_help()
		sys.exit(1)

	args.config = _load_config(args)
	setup_logging(level=args.config.log_level, log_dir=args.config.log_dir)
	args.func(args)
