"""
State serialization utilities.

Guests receive the whole GameState on every update and rebuild it from the
dict form here; nothing is merged.
"""

from typing import Any, Dict, List, Optional

from .constants import PHASE_LOBBY, SEAT_COUNT
from .models import Card, GameConfig, GameState, Player, Rank, Suit


def card_to_dict(card: Card) -> Dict[str, Any]:
    return {
        "id": card.id,
        "suit": card.suit.value,
        "rank": int(card.rank),
        "label": card.label,
        "value": card.value,
    }


def card_from_dict(data: Dict[str, Any]) -> Card:
    return Card(
        id=data["id"],
        suit=Suit(data["suit"]),
        rank=Rank(data["rank"]),
        label=data["label"],
        value=data["value"],
    )


def _cards_from_list(items: Optional[List[Dict[str, Any]]]) -> List[Card]:
    return [card_from_dict(item) for item in items or []]


def player_to_dict(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "hand": [card_to_dict(c) for c in player.hand],
        "role": player.role,
        "beans": player.beans,
        "ready": player.ready,
        "last_action": player.last_action,
        "is_bot": player.is_bot,
        "connected": player.connected,
        "auto_pilot": player.auto_pilot,
    }


def player_from_dict(data: Dict[str, Any]) -> Player:
    return Player(
        id=data["id"],
        name=data["name"],
        hand=_cards_from_list(data.get("hand")),
        role=data["role"],
        beans=data["beans"],
        ready=data.get("ready", True),
        last_action=data.get("last_action", ""),
        is_bot=data.get("is_bot", False),
        connected=data.get("connected", True),
        auto_pilot=data.get("auto_pilot", False),
    )


def state_to_dict(state: GameState) -> Dict[str, Any]:
    """
    Serialize the complete game state.

    Args:
        state: Game state to serialize

    Returns:
        Dictionary safe for JSON transmission
    """
    return {
        "id": state.id,
        "version": state.version,
        "phase": state.phase,
        "players": [player_to_dict(p) for p in state.players],
        "current_turn_index": state.current_turn_index,
        "landlord_id": state.landlord_id,
        "base_bid": state.base_bid,
        "multiplier": state.multiplier,
        "last_played_cards": [card_to_dict(c) for c in state.last_played_cards],
        "last_player_id": state.last_player_id,
        "kitty_cards": [card_to_dict(c) for c in state.kitty_cards],
        "discard": [card_to_dict(c) for c in state.discard],
        "winner_id": state.winner_id,
        "laizi_rank": state.laizi_rank,
        "bids_taken": state.bids_taken,
        "config": {
            "enable_laizi": state.config.enable_laizi,
            "is_dedicated": state.config.is_dedicated,
        },
    }


def state_from_dict(data: Dict[str, Any]) -> GameState:
    """Rebuild a GameState from `state_to_dict` output."""
    config = data.get("config") or {}
    return GameState(
        id=data["id"],
        version=data["version"],
        phase=data["phase"],
        players=[player_from_dict(p) for p in data.get("players", [])],
        current_turn_index=data.get("current_turn_index", 0),
        landlord_id=data.get("landlord_id"),
        base_bid=data.get("base_bid", 0),
        multiplier=data.get("multiplier", 1),
        last_played_cards=_cards_from_list(data.get("last_played_cards")),
        last_player_id=data.get("last_player_id"),
        kitty_cards=_cards_from_list(data.get("kitty_cards")),
        discard=_cards_from_list(data.get("discard")),
        winner_id=data.get("winner_id"),
        laizi_rank=data.get("laizi_rank"),
        bids_taken=data.get("bids_taken", 0),
        config=GameConfig(
            enable_laizi=config.get("enable_laizi", False),
            is_dedicated=config.get("is_dedicated", False),
        ),
    )


def serialize_player_for_list(player: Player) -> Dict[str, Any]:
    """Serialize player for lobby player list."""
    return {
        "id": player.id,
        "name": player.name,
        "is_bot": player.is_bot,
        "connected": player.connected,
        "beans": player.beans,
    }


def get_public_room_info(state: GameState) -> Dict[str, Any]:
    """Get public information about a room for listings."""
    return {
        "id": state.id,
        "phase": state.phase,
        "player_count": len(state.players),
        "max_players": SEAT_COUNT,
        "joinable": state.phase == PHASE_LOBBY and len(state.players) < SEAT_COUNT,
        "laizi": state.config.enable_laizi,
        "players": [serialize_player_for_list(p) for p in state.players],
    }
