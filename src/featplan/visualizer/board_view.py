"""Rich views for the feature board and card history."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..board.models import Action, Board, LogEntry

ACTION_STATUS_STYLES = {
	"done": "green",
	"open": "dim",
	"todo": "dim",
	"in-progress": "yellow",
	"in progress": "yellow",
	"blocked": "red",
	"failed": "red",
}


def _action_line(action: Action) -> str:
	style = ACTION_STATUS_STYLES.get(action.status.lower(), "white")
	return f"[{style}]{escape(action.status or '-')}[/{style}] [bold]{escape(action.type)}[/bold] {escape(action.description)}"


def render_board(board: Board, console: Optional[Console] = None, show_empty: bool = False) -> None:
	"""Render the board as a tree of columns, cards and actions."""
	console = console or Console()

	tree = Tree(f"[bold]Feature Plan[/bold]  [dim]({board.card_count()} cards)[/dim]")
	for column in board.columns:
		if not column.cards and not show_empty:
			continue
		column_branch = tree.add(f"[bold cyan]{escape(column.title)}[/bold cyan] [dim]({len(column.cards)})[/dim]")
		for card in column.cards:
			label = f"[bold]{escape(card.title)}[/bold] [dim]{escape(card.id)}[/dim]"
			if card.branch:
				label += f"  [magenta]{escape(card.branch)}[/magenta]"
			if card.has_doc:
				label += "  [green]doc[/green]"
			card_branch = column_branch.add(label)
			if card.description:
				card_branch.add(f"[dim]{escape(card.description)}[/dim]")
			for action in card.actions:
				card_branch.add(_action_line(action))

	console.print(tree)


def render_board_summary(board: Board, console: Optional[Console] = None) -> None:
	"""Render a one-row-per-column count table."""
	console = console or Console()

	table = Table(title="Feature Plan")
	table.add_column("Column", style="cyan")
	table.add_column("Cards", justify="right")
	for column in board.columns:
		table.add_row(column.title, str(len(column.cards)))
	console.print(table)


def render_log(card_id: str, entries: list[LogEntry], console: Optional[Console] = None) -> None:
	"""Render a card's history, newest first."""
	console = console or Console()

	if not entries:
		console.print(f"[dim]No history for {card_id}.[/dim]")
		return

	lines = []
	for entry in entries:
		lines.append(f"[bold]{entry.timestamp}[/bold] [yellow]{escape(entry.actor)}[/yellow]")
		for item in entry.items:
			lines.append(f"  - {escape(item)}")
		lines.append("")

	console.print(Panel("\n".join(lines).rstrip(), title=f"Log: {card_id}", border_style="cyan"))
