"""
Card shuffling and dealing utilities.
"""

import random
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from .constants import DECK_SIZE, HAND_SIZE, KITTY_SIZE, ROLE_LANDLORD, SEAT_COUNT
from .errors import INVALID_DEAL, raise_error
from .models import Card, GameState, Rank, Suit

RANK_LABELS = {
    Rank.THREE: '3', Rank.FOUR: '4', Rank.FIVE: '5', Rank.SIX: '6',
    Rank.SEVEN: '7', Rank.EIGHT: '8', Rank.NINE: '9', Rank.TEN: '10',
    Rank.JACK: 'J', Rank.QUEEN: 'Q', Rank.KING: 'K', Rank.ACE: 'A',
    Rank.TWO: '2', Rank.SMALL_JOKER: 'Joker', Rank.BIG_JOKER: 'JOKER',
}

SUITS = [Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES]
SUITED_RANKS = [r for r in Rank if r < Rank.SMALL_JOKER]


def create_deck() -> List[Card]:
    """Create the 54-card deck; ids are stable for the deck's lifetime."""
    deck = []
    card_id = 0

    for rank in SUITED_RANKS:
        for suit in SUITS:
            deck.append(Card(
                id=f"card-{card_id}",
                suit=suit,
                rank=rank,
                label=RANK_LABELS[rank],
                value=int(rank),
            ))
            card_id += 1

    for rank in (Rank.SMALL_JOKER, Rank.BIG_JOKER):
        deck.append(Card(
            id=f"card-{card_id}",
            suit=Suit.NONE,
            rank=rank,
            label=RANK_LABELS[rank],
            value=int(rank),
        ))
        card_id += 1

    return deck


def shuffle_deck(deck: Sequence[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """
    Fisher-Yates shuffle of a copy of the deck.

    Args:
        deck: Cards to shuffle
        rng: Optional random source for deterministic shuffling

    Returns:
        Shuffled copy of the deck
    """
    rng = rng or random
    deck_copy = list(deck)
    for i in range(len(deck_copy) - 1, 0, -1):
        j = rng.randint(0, i)
        deck_copy[i], deck_copy[j] = deck_copy[j], deck_copy[i]
    return deck_copy


def sort_hand(hand: Sequence[Card]) -> List[Card]:
    """Sort a hand by value, highest first."""
    return sorted(hand, key=lambda c: c.value, reverse=True)


def deal_cards(deck: Sequence[Card]) -> Tuple[List[List[Card]], List[Card]]:
    """
    Deal 17 cards to each of the three seats and set three aside.

    Seat i receives deck[17*i : 17*(i+1)]; the kitty is the last three cards.

    Returns:
        (hands in seat order, kitty)
    """
    if len(deck) != DECK_SIZE:
        raise_error(INVALID_DEAL, f"Expected a {DECK_SIZE}-card deck, got {len(deck)}")

    hands = []
    for seat in range(SEAT_COUNT):
        start_idx = seat * HAND_SIZE
        hands.append(sort_hand(deck[start_idx:start_idx + HAND_SIZE]))

    kitty = list(deck[SEAT_COUNT * HAND_SIZE:])
    assert len(kitty) == KITTY_SIZE
    return hands, kitty


def validate_deck_integrity(state: GameState) -> bool:
    """
    Validate that every card is accounted for exactly once.

    Hands plus played cards, plus the kitty while it has not been awarded,
    must equal the reference deck. Once a landlord exists the kitty lives in
    their hand and kitty_cards is kept only for display.
    """
    all_cards: List[Card] = []

    for player in state.players:
        all_cards.extend(player.hand)

    all_cards.extend(state.discard)

    if state.landlord_id is None or not any(
        p.id == state.landlord_id and p.role == ROLE_LANDLORD for p in state.players
    ):
        all_cards.extend(state.kitty_cards)

    counts = Counter(card.id for card in all_cards)
    expected = {card.id for card in create_deck()}
    return (
        all(n == 1 for n in counts.values()) and
        set(counts) == expected
    )
