"""Rich console views for the feature board."""

from .board_view import render_board, render_board_summary, render_log

__all__ = ["render_board", "render_board_summary", "render_log"]
