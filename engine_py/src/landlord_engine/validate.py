"""
Pattern validation for card plays.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .comparator import effective_values, is_rocket, is_uniform
from .constants import BID_AMOUNTS, PHASE_BIDDING, PHASE_PLAYING
from .errors import (
    CANNOT_PASS,
    ILLEGAL_PLAY,
    INVALID_BID,
    NOT_YOUR_TURN,
    OWNERSHIP_MISMATCH,
    WRONG_PHASE,
)
from .models import Card, GameState, Player

PATTERN_SINGLE = "single"
PATTERN_PAIR = "pair"
PATTERN_TRIPLE = "triple"
PATTERN_BOMB = "bomb"
PATTERN_ROCKET = "rocket"

_UNIFORM_PATTERNS = {1: PATTERN_SINGLE, 2: PATTERN_PAIR, 3: PATTERN_TRIPLE, 4: PATTERN_BOMB}


@dataclass(frozen=True)
class Pattern:
    kind: str
    value: int
    length: int

    @property
    def is_bomb(self) -> bool:
        return self.kind == PATTERN_BOMB

    @property
    def is_rocket(self) -> bool:
        return self.kind == PATTERN_ROCKET


class ValidationResult:
    """Result of an action pre-check."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cards: Optional[List[Card]] = None,
        pattern: Optional[Pattern] = None
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message
        self.cards = cards or []
        self.pattern = pattern

    @classmethod
    def success(cls, cards: Optional[List[Card]] = None, pattern: Optional[Pattern] = None) -> 'ValidationResult':
        """Create a successful validation result."""
        return cls(valid=True, cards=cards, pattern=pattern)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ValidationResult':
        """Create an error validation result."""
        return cls(valid=False, error_code=error_code, error_message=error_message)


def detect_pattern(cards: Sequence[Card], wildcard_rank: Optional[int] = None) -> Optional[Pattern]:
    """
    Detect the pattern of cards being played.

    Only rockets and uniform sets of one to four cards are recognised;
    straights, airplanes and four-with-two are not part of this ruleset.

    Returns:
        Pattern, or None if the cards do not form a supported pattern
    """
    if not cards:
        return None

    if is_rocket(cards):
        return Pattern(PATTERN_ROCKET, max(c.value for c in cards), 2)

    values = effective_values(cards, wildcard_rank)
    if not is_uniform(values) or len(cards) not in _UNIFORM_PATTERNS:
        return None

    return Pattern(_UNIFORM_PATTERNS[len(cards)], values[0], len(cards))


def is_valid_play(
    cards: Sequence[Card],
    last_cards: Sequence[Card],
    wildcard_rank: Optional[int] = None
) -> bool:
    """
    Decide whether `cards` may be played on top of `last_cards`.

    An empty `cards` is not a play (passing is handled by the engine) and is
    rejected. An empty `last_cards` means the player is leading the trick.
    The previous play is resolved with the same wildcard rule as the new one.
    """
    if not cards:
        return False

    pattern = detect_pattern(cards, wildcard_rank)
    if pattern is None:
        return False

    if not last_cards:
        return True

    # Rocket beats everything
    if pattern.is_rocket:
        return True

    last_pattern = detect_pattern(last_cards, wildcard_rank)
    if last_pattern is None:
        return False
    if last_pattern.is_rocket:
        return False

    # Bomb beats everything except a rocket and a bigger bomb
    if pattern.is_bomb:
        if not last_pattern.is_bomb:
            return True
        return pattern.value > last_pattern.value
    if last_pattern.is_bomb:
        return False

    # Same shape, strictly higher value
    if pattern.length != last_pattern.length:
        return False
    return pattern.value > last_pattern.value


def validate_ownership(player: Player, card_ids: Sequence[str]) -> Optional[List[Card]]:
    """
    Resolve card ids against the player's own hand.

    The host never trusts card values sent by a client, only their ids.

    Returns:
        The player's Card objects, or None if any id is unknown or repeated
    """
    if len(set(card_ids)) != len(card_ids):
        return None

    by_id: Dict[str, Card] = {card.id: card for card in player.hand}
    resolved = []
    for card_id in card_ids:
        card = by_id.get(card_id)
        if card is None:
            return None
        resolved.append(card)
    return resolved


def _check_turn(state: GameState, player_id: str, phase: str) -> Optional[ValidationResult]:
    if state.phase != phase:
        return ValidationResult.error(
            WRONG_PHASE,
            f"Game is not in {phase} phase (current: {state.phase})"
        )

    current = state.current_player
    if current is None or current.id != player_id:
        return ValidationResult.error(
            NOT_YOUR_TURN,
            f"It's not your turn (current turn: {current.id if current else None})"
        )
    return None


def validate_bid(state: GameState, player_id: str, amount: int) -> ValidationResult:
    """
    Validate a bid attempt.

    Args:
        state: Current game state
        player_id: ID of player bidding
        amount: Bid amount, 0 meaning no bid

    Returns:
        ValidationResult with validation outcome
    """
    turn_error = _check_turn(state, player_id, PHASE_BIDDING)
    if turn_error:
        return turn_error

    if amount not in BID_AMOUNTS:
        return ValidationResult.error(
            INVALID_BID,
            f"Bid must be one of {BID_AMOUNTS} (got {amount})"
        )

    return ValidationResult.success()


def validate_play(state: GameState, player_id: str, card_ids: Sequence[str]) -> ValidationResult:
    """
    Validate a play (or, with no cards, a pass) attempt.

    Args:
        state: Current game state
        player_id: ID of player attempting the play
        card_ids: IDs of the cards being played; empty means pass

    Returns:
        ValidationResult carrying the resolved cards and their pattern
    """
    turn_error = _check_turn(state, player_id, PHASE_PLAYING)
    if turn_error:
        return turn_error

    leading = state.is_leading(player_id)

    if not card_ids:
        if leading:
            return ValidationResult.error(
                CANNOT_PASS,
                "Cannot pass while leading the trick"
            )
        return ValidationResult.success()

    player = state.players[state.current_turn_index]
    cards = validate_ownership(player, card_ids)
    if cards is None:
        return ValidationResult.error(
            OWNERSHIP_MISMATCH,
            "Player does not own all specified cards"
        )

    last_cards = [] if leading else state.last_played_cards
    if not is_valid_play(cards, last_cards, state.laizi_rank):
        return ValidationResult.error(
            ILLEGAL_PLAY,
            f"{' '.join(str(c) for c in cards)} does not beat the table"
        )

    return ValidationResult.success(cards, detect_pattern(cards, state.laizi_rank))
