"""Game models and data structures"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional

from .constants import (
    INITIAL_BEANS,
    PHASE_LOBBY,
    ROLE_PEASANT,
)


class Suit(str, Enum):
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"
    SPADES = "♠"
    NONE = ""  # jokers


class Rank(IntEnum):
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14
    TWO = 15
    SMALL_JOKER = 16
    BIG_JOKER = 17


@dataclass(frozen=True)
class Card:
    id: str
    suit: Suit
    rank: Rank
    label: str
    value: int

    def __str__(self) -> str:
        return f"{self.suit.value}{self.label}"


@dataclass
class Player:
    id: str
    name: str
    hand: List[Card] = field(default_factory=list)
    role: str = ROLE_PEASANT
    beans: int = INITIAL_BEANS
    ready: bool = True
    last_action: str = ""  # display only
    is_bot: bool = False
    connected: bool = True
    auto_pilot: bool = False  # bot policy drives a disconnected human seat

    @property
    def bot_controlled(self) -> bool:
        return self.is_bot or self.auto_pilot


@dataclass
class GameConfig:
    enable_laizi: bool = False
    is_dedicated: bool = False


@dataclass
class GameState:
    id: str
    version: int = 0
    phase: str = PHASE_LOBBY
    players: List[Player] = field(default_factory=list)
    current_turn_index: int = 0
    landlord_id: Optional[str] = None
    base_bid: int = 0
    multiplier: int = 1
    last_played_cards: List[Card] = field(default_factory=list)
    last_player_id: Optional[str] = None
    # Still shown after the landlord takes it; the cards then also sit in the
    # landlord's hand, so deck checks skip the kitty once a landlord exists
    kitty_cards: List[Card] = field(default_factory=list)
    discard: List[Card] = field(default_factory=list)
    winner_id: Optional[str] = None
    laizi_rank: Optional[int] = None
    bids_taken: int = 0
    config: GameConfig = field(default_factory=GameConfig)

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def seat_of(self, player_id: Optional[str]) -> Optional[int]:
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return None

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_turn_index < len(self.players):
            return self.players[self.current_turn_index]
        return None

    def is_leading(self, player_id: str) -> bool:
        """Whether player_id may lead: nothing on the table, or their own play came back around."""
        return self.last_player_id is None or self.last_player_id == player_id

    def increment_version(self):
        self.version += 1
