"""
Panel message protocol.

Messages are JSON objects tagged by `type`. Each variant is its own model;
parse_message() resolves the tag through a pydantic discriminated union so
handlers receive typed payloads.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .board.models import Board, Card, LogEntry


class _Message(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	def to_wire(self) -> dict:
		return self.model_dump(by_alias=True)


# Panel -> core

class ReadyMessage(_Message):
	type: Literal["ready"] = "ready"


class InitProjectMessage(_Message):
	type: Literal["initProject"] = "initProject"


class MoveFeatureMessage(_Message):
	type: Literal["moveFeature"] = "moveFeature"
	feature_id: str = Field(alias="featureId")
	new_status: str = Field(alias="newStatus")


class UpdateCardMessage(_Message):
	type: Literal["updateCard"] = "updateCard"
	card: Card


class AddCardMessage(_Message):
	type: Literal["addCard"] = "addCard"
	column_id: str = Field(alias="columnId")
	title: str


class DeleteCardMessage(_Message):
	type: Literal["deleteCard"] = "deleteCard"
	card_id: str = Field(alias="cardId")


class GetLogMessage(_Message):
	type: Literal["getLog"] = "getLog"
	card_id: str = Field(alias="cardId")


PanelMessage = Annotated[
	Union[
		ReadyMessage,
		InitProjectMessage,
		MoveFeatureMessage,
		UpdateCardMessage,
		AddCardMessage,
		DeleteCardMessage,
		GetLogMessage,
	],
	Field(discriminator="type"),
]

_panel_adapter: TypeAdapter = TypeAdapter(PanelMessage)


def parse_message(data: dict) -> PanelMessage:
	"""Validate a raw panel message. Raises pydantic.ValidationError on unknown tags."""
	return _panel_adapter.validate_python(data)


# Core -> panel

class UpdateViewMessage(_Message):
	type: Literal["updateView"] = "updateView"
	data: Board


class LogDataMessage(_Message):
	type: Literal["logData"] = "logData"
	card_id: str = Field(alias="cardId")
	entries: list[LogEntry] = Field(default_factory=list)


OutgoingMessage = Union[UpdateViewMessage, LogDataMessage]
