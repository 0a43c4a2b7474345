"""Tests for the panel message protocol."""

import pytest
from pydantic import ValidationError

from featplan.board.models import Board, LogEntry
from featplan.messages import (
	AddCardMessage,
	LogDataMessage,
	MoveFeatureMessage,
	ReadyMessage,
	UpdateCardMessage,
	UpdateViewMessage,
	parse_message,
)

from .helpers import make_board, make_card


class TestParseMessage:
	def test_ready(self):
		assert isinstance(parse_message({"type": "ready"}), ReadyMessage)

	def test_move_feature(self):
		msg = parse_message({"type": "moveFeature", "featureId": "a", "newStatus": "Done"})
		assert isinstance(msg, MoveFeatureMessage)
		assert (msg.feature_id, msg.new_status) == ("a", "Done")

	def test_add_card(self):
		msg = parse_message({"type": "addCard", "columnId": "backlog", "title": "New"})
		assert isinstance(msg, AddCardMessage)
		assert msg.column_id == "backlog"

	def test_update_card_reads_has_doc_alias(self):
		msg = parse_message({
			"type": "updateCard",
			"card": {"id": "a", "title": "A", "hasDoc": True, "actions": []},
		})
		assert isinstance(msg, UpdateCardMessage)
		assert msg.card.has_doc is True
		assert msg.card.branch is None

	def test_unknown_type(self):
		with pytest.raises(ValidationError):
			parse_message({"type": "previewDoc", "cardId": "a"})

	def test_missing_field(self):
		with pytest.raises(ValidationError):
			parse_message({"type": "deleteCard"})


class TestOutgoing:
	def test_update_view_wire_shape(self):
		card = make_card("Task", branch="feat/task")
		card.has_doc = True
		wire = UpdateViewMessage(data=make_board(("Backlog", [card]))).to_wire()

		assert wire["type"] == "updateView"
		[column] = wire["data"]["columns"]
		assert column["id"] == "backlog"
		assert column["cards"][0] == {
			"id": "task",
			"title": "Task",
			"branch": "feat/task",
			"description": None,
			"actions": [],
			"hasDoc": True,
		}

	def test_log_data_wire_shape(self):
		entry = LogEntry(timestamp="2026-01-01 00:00:00", actor="Claude", items=["x"])
		wire = LogDataMessage(card_id="a", entries=[entry]).to_wire()
		assert wire == {
			"type": "logData",
			"cardId": "a",
			"entries": [{"timestamp": "2026-01-01 00:00:00", "actor": "Claude", "items": ["x"]}],
		}

	def test_empty_board(self):
		wire = UpdateViewMessage(data=Board.default()).to_wire()
		assert len(wire["data"]["columns"]) == 7
