"""
Heuristic bot driven by the pure bid/play policy.
"""

import logging
from typing import Optional

from .base import BaseBot, BotAction
from .policy import get_bot_bid, get_bot_move
from ..models import GameState

logger = logging.getLogger(__name__)


class HeuristicBot(BaseBot):
    """
    Bot that bids on hand strength and plays the cheapest beating group.

    Strategy:
    - Bid from high cards and bombs
    - Lead with the lowest single
    - Follow with the lowest group that beats the table, then bombs, then the rocket
    """

    def choose_action(self, state: GameState) -> Optional[BotAction]:
        """Choose the action for the current state, or None if not our turn."""
        hand = self.get_player_hand(state)

        if self.is_bidding(state):
            return BotAction.bid(get_bot_bid(hand))

        if self.is_playing(state):
            cards = get_bot_move(hand, self.get_table_cards(state), state.laizi_rank)
            if not cards:
                return BotAction.pass_turn()
            logger.debug(f"Bot {self.player_id} picked {[str(c) for c in cards]}")
            return BotAction.play([c.id for c in cards])

        return None
