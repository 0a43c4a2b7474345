"""Board module - plan document codec, diff engine and audit log."""

from .audit_log import AuditLog, parse_log
from .codec import decode, encode
from .diff import diff_board, diff_card
from .models import KNOWN_STATUSES, Action, Board, Card, CardChange, Column, LogEntry, slugify

__all__ = [
	"Action",
	"AuditLog",
	"Board",
	"Card",
	"CardChange",
	"Column",
	"KNOWN_STATUSES",
	"LogEntry",
	"decode",
	"diff_board",
	"diff_card",
	"encode",
	"parse_log",
	"slugify",
]
