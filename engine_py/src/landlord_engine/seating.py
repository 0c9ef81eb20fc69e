"""
Seat order helpers.

Seating order is the order of `GameState.players` and defines turn rotation.
"""

from typing import List, Optional, Sequence

from .models import GameState


def seat_order(state: GameState) -> List[str]:
    """Player ids in seating order."""
    return [p.id for p in state.players]


def seat_index(order: Sequence[str], player_id: str) -> Optional[int]:
    try:
        return list(order).index(player_id)
    except ValueError:
        return None


def relative_seat(order: Sequence[str], self_id: str, offset: int) -> Optional[str]:
    """
    Id of the player `offset` seats after `self_id` (wrapping).

    offset=1 is the next player to act, offset=-1 the previous one.
    Returns None if `self_id` is not seated.
    """
    index = seat_index(order, self_id)
    if index is None or not order:
        return None
    return order[(index + offset) % len(order)]


def next_seat(state: GameState, index: int) -> int:
    return (index + 1) % len(state.players)
