"""
Card value comparison helpers with support for wildcard (Laizi) substitution.

Suit never matters here: only `Card.value` orders or groups cards.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence

from .constants import SMALL_JOKER_VALUE
from .models import Card


def group_by_value(cards: Sequence[Card]) -> Dict[int, List[Card]]:
    """Group cards by value, preserving their order within each group."""
    groups: Dict[int, List[Card]] = defaultdict(list)
    for card in cards:
        groups[card.value].append(card)
    return dict(groups)


def is_uniform(values: Sequence[int]) -> bool:
    """Check if every value is the same (a single card is uniform)."""
    return len(values) > 0 and len(set(values)) == 1


def is_rocket(cards: Sequence[Card]) -> bool:
    """Both jokers. Uses native values, so wildcards never form a rocket."""
    return len(cards) == 2 and all(c.value >= SMALL_JOKER_VALUE for c in cards)


def split_wildcards(cards: Sequence[Card], wildcard_rank: Optional[int]):
    """Partition cards into (wildcards, others)."""
    if wildcard_rank is None:
        return [], list(cards)
    wildcards = [c for c in cards if c.rank == wildcard_rank]
    others = [c for c in cards if c.rank != wildcard_rank]
    return wildcards, others


def effective_values(cards: Sequence[Card], wildcard_rank: Optional[int]) -> List[int]:
    """
    Values of the cards after wildcard substitution.

    Wildcards become copies of the other cards' value only when those other
    cards all share one value. A play made only of wildcards keeps the
    wildcards' own value, and a non-uniform remainder is left untouched
    (wildcards never complete sequences).
    """
    wildcards, others = split_wildcards(cards, wildcard_rank)

    if wildcards and others:
        other_values = {c.value for c in others}
        if len(other_values) == 1:
            target = other_values.pop()
            return [target] * len(cards)

    return [c.value for c in cards]


def lowest_card(cards: Sequence[Card]) -> Card:
    if not cards:
        raise ValueError("Cannot get lowest card from empty list")
    return min(cards, key=lambda c: c.value)
