"""
Base bot interface and utilities.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..constants import PHASE_BIDDING, PHASE_PLAYING
from ..models import Card, GameState


class BotAction:
    """Represents a bot action."""

    def __init__(self, action_type: str, **kwargs):
        self.type = action_type
        self.data = kwargs

    @classmethod
    def bid(cls, amount: int) -> 'BotAction':
        """Create a bid action."""
        return cls('bid', amount=amount)

    @classmethod
    def play(cls, cards: List[str]) -> 'BotAction':
        """Create a play action."""
        return cls('play', cards=cards)

    @classmethod
    def pass_turn(cls) -> 'BotAction':
        """Create a pass action."""
        return cls('pass')

    def __repr__(self) -> str:
        return f"BotAction({self.type}, {self.data})"


class BaseBot(ABC):
    """Abstract base class for bot players."""

    def __init__(self, player_id: str):
        self.player_id = player_id

    @abstractmethod
    def choose_action(self, state: GameState) -> Optional[BotAction]:
        """
        Choose an action based on the current game state.

        Args:
            state: Current game state

        Returns:
            BotAction to take, or None if no action needed
        """
        pass

    def get_player_hand(self, state: GameState) -> List[Card]:
        """Get this bot's current hand."""
        player = state.get_player(self.player_id)
        return player.hand if player else []

    def is_my_turn(self, state: GameState) -> bool:
        """Check if it's this bot's turn."""
        current = state.current_player
        return current is not None and current.id == self.player_id

    def is_bidding(self, state: GameState) -> bool:
        return state.phase == PHASE_BIDDING and self.is_my_turn(state)

    def is_playing(self, state: GameState) -> bool:
        return state.phase == PHASE_PLAYING and self.is_my_turn(state)

    def get_table_cards(self, state: GameState) -> List[Card]:
        """Cards this bot has to beat; empty when it is leading."""
        if state.is_leading(self.player_id):
            return []
        return list(state.last_played_cards)
