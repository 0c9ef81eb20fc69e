"""
Wire messages and network transports for the Landlord game.
"""

from .events import (
    ActionBid,
    ActionPlay,
    ActionRestart,
    GameStateUpdate,
    JoinRequest,
    decode_message,
    encode_message,
    parse_message,
)

__all__ = [
    "ActionBid",
    "ActionPlay",
    "ActionRestart",
    "GameStateUpdate",
    "JoinRequest",
    "decode_message",
    "encode_message",
    "parse_message",
]
