"""
Wire message models and the orjson codec.

Every message is a tagged record; `type` selects the model.
"""

import time
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import orjson
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..models import Card


class CardPayload(BaseModel):
    """A card as sent by a guest. Only `id` is trusted by the host."""
    id: str = Field(..., min_length=1)
    suit: str = ""
    rank: Optional[int] = None
    label: str = ""
    value: Optional[int] = None

    @classmethod
    def from_card(cls, card: Card) -> 'CardPayload':
        return cls(
            id=card.id,
            suit=card.suit.value,
            rank=int(card.rank),
            label=card.label,
            value=card.value,
        )


class BaseMessage(BaseModel):
    """Base message model."""
    timestamp: float = Field(default_factory=time.time)


class JoinRequest(BaseMessage):
    """Guest asks for a seat."""
    type: Literal["JOIN_REQUEST"] = "JOIN_REQUEST"
    name: str = Field(..., min_length=1, max_length=30)


class GameStateUpdate(BaseMessage):
    """Host snapshot; `seq` grows with every accepted mutation."""
    type: Literal["GAME_STATE_UPDATE"] = "GAME_STATE_UPDATE"
    seq: int = Field(..., ge=0)
    state: Dict[str, Any]


class ActionBid(BaseMessage):
    """Bid for the landlord role; 0 means no bid."""
    type: Literal["ACTION_BID"] = "ACTION_BID"
    amount: int


class ActionPlay(BaseMessage):
    """Play cards; an empty list is a pass."""
    type: Literal["ACTION_PLAY"] = "ACTION_PLAY"
    cards: List[CardPayload] = Field(default_factory=list, max_length=20)

    @property
    def card_ids(self) -> List[str]:
        return [c.id for c in self.cards]


class ActionRestart(BaseMessage):
    """Ask the host to deal again after a finished game."""
    type: Literal["ACTION_RESTART"] = "ACTION_RESTART"


Message = Annotated[
    Union[JoinRequest, GameStateUpdate, ActionBid, ActionPlay, ActionRestart],
    Field(discriminator="type"),
]

_message_adapter = TypeAdapter(Message)


def parse_message(data: Dict[str, Any]) -> Message:
    """
    Parse raw message data into the matching model.

    Raises:
        ValueError: If the type is unknown or the payload is malformed
    """
    if not isinstance(data, dict):
        raise ValueError(f"Message must be an object, got {type(data).__name__}")

    if not data.get("type"):
        raise ValueError("Missing message type")

    try:
        return _message_adapter.validate_python(data)
    except ValidationError as e:
        raise ValueError(f"Invalid message data: {e}")


def encode_message(message: BaseModel) -> bytes:
    return orjson.dumps(message.model_dump(mode="json"))


def decode_message(raw) -> Message:
    """Decode wire bytes (or text) into a message model."""
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}")
    return parse_message(data)


def create_state_update(seq: int, state: Dict[str, Any]) -> GameStateUpdate:
    return GameStateUpdate(seq=seq, state=state)


def create_play(cards: List[Card]) -> ActionPlay:
    return ActionPlay(cards=[CardPayload.from_card(c) for c in cards])
