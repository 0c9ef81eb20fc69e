"""
Pure bid and play heuristics shared by every bot seat.

The policy reads cards at their native value only; it never tries to build
wildcard combinations from its own hand.
"""

from typing import List, Optional, Sequence

from ..comparator import group_by_value, lowest_card
from ..constants import BIG_JOKER_VALUE, SMALL_JOKER_VALUE
from ..models import Card
from ..validate import detect_pattern


def score_hand(hand: Sequence[Card]) -> int:
    """
    Bidding strength of a hand.

    +2 for each card valued 15 or more (twos and jokers), +1 for each king
    or ace, +3 for each group of four equal-value cards.
    """
    score = 0
    for card in hand:
        if card.value >= 15:
            score += 2
        elif card.value >= 13:
            score += 1

    for cards in group_by_value(hand).values():
        if len(cards) == 4:
            score += 3

    return score


def get_bot_bid(hand: Sequence[Card]) -> int:
    """Bid 0-3 from the hand score."""
    score = score_hand(hand)
    if score > 6:
        return 3
    if score > 4:
        return 2
    if score > 2:
        return 1
    return 0


def _groups_ascending(hand: Sequence[Card]) -> List[List[Card]]:
    groups = group_by_value(hand)
    return [groups[value] for value in sorted(groups)]


def _find_rocket(hand: Sequence[Card]) -> Optional[List[Card]]:
    small = next((c for c in hand if c.value == SMALL_JOKER_VALUE), None)
    big = next((c for c in hand if c.value == BIG_JOKER_VALUE), None)
    if small and big:
        return [small, big]
    return None


def get_bot_move(
    hand: Sequence[Card],
    last_played: Sequence[Card],
    wildcard_rank: Optional[int] = None
) -> List[Card]:
    """
    Choose the cards to play; an empty list means pass.

    Args:
        hand: The bot's cards
        last_played: Cards on the table, empty when the bot is leading
        wildcard_rank: Wildcard rank this round, used only to read the table

    Returns:
        Cards to play, taken from `hand`
    """
    if not hand:
        return []

    if not last_played:
        return [lowest_card(hand)]

    table = detect_pattern(last_played, wildcard_rank)
    if table is None or table.is_rocket:
        return []

    groups = _groups_ascending(hand)

    if not table.is_bomb:
        for cards in groups:
            if len(cards) >= table.length and cards[0].value > table.value:
                return list(cards[:table.length])

    for cards in groups:
        if len(cards) != 4:
            continue
        if table.is_bomb and cards[0].value <= table.value:
            continue
        return list(cards)

    rocket = _find_rocket(hand)
    if rocket:
        return rocket

    return []
