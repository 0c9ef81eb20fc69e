"""
Game state transitions.

Every transition takes the current GameState and returns an ActionResult
holding a new state; the input state is never modified. Player mistakes are
reported through the result rather than raised.
"""

import copy
import logging
import random
import uuid
from typing import List, Optional

from .constants import (
    ACTION_LABEL_NO_BID,
    ACTION_LABEL_PASS,
    ACTION_LABEL_PLAY,
    BOT_ID_PREFIX,
    HOST_NAME_SUFFIX,
    INITIAL_BEANS,
    MAX_BID,
    PHASE_BIDDING,
    PHASE_DEALING,
    PHASE_GAME_OVER,
    PHASE_LOBBY,
    PHASE_PLAYING,
    ROLE_LANDLORD,
    ROLE_PEASANT,
    SEAT_COUNT,
    STAKE_UNIT,
    WILDCARD_MAX_VALUE,
    WILDCARD_MIN_VALUE,
)
from .errors import (
    ACTION_NOT_ALLOWED,
    ALREADY_SEATED,
    NOT_ENOUGH_PLAYERS,
    NOT_SEATED,
    ROOM_FULL,
    WRONG_PHASE,
)
from .models import GameState, Player
from .rules import RuleConfig, default_rules
from .seating import next_seat
from .shuffle import create_deck, deal_cards, shuffle_deck, sort_hand
from .validate import validate_bid, validate_play

logger = logging.getLogger(__name__)


class ActionResult:
    """Outcome of a transition: the next state, or the unchanged one plus an error."""

    def __init__(
        self,
        success: bool,
        state: GameState,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        self.success = success
        self.state = state
        self.error_code = error_code
        self.error_message = error_message

    @classmethod
    def ok(cls, state: GameState) -> 'ActionResult':
        return cls(success=True, state=state)

    @classmethod
    def fail(cls, state: GameState, error_code: str, error_message: str) -> 'ActionResult':
        return cls(success=False, state=state, error_code=error_code, error_message=error_message)

    def __repr__(self) -> str:
        if self.success:
            return f"ActionResult(ok, version={self.state.version})"
        return f"ActionResult({self.error_code}: {self.error_message})"


def create_room(
    room_id: str,
    rules: Optional[RuleConfig] = None,
    host_id: Optional[str] = None,
    host_name: Optional[str] = None
) -> GameState:
    """
    Create a new room in the Lobby phase.

    Unless the room is dedicated, the host takes seat 0.
    """
    rules = rules or default_rules
    state = GameState(id=room_id, config=rules.game_config())

    if host_id and not rules.is_dedicated:
        state.players.append(Player(
            id=host_id,
            name=f"{host_name or host_id}{HOST_NAME_SUFFIX}",
            beans=rules.initial_beans,
        ))

    logger.info(f"Created room {room_id} (dedicated={rules.is_dedicated}, laizi={rules.enable_laizi})")
    return state


def join_room(
    state: GameState,
    player_id: str,
    name: str,
    is_bot: bool = False,
    initial_beans: int = INITIAL_BEANS
) -> ActionResult:
    """Seat a new player. Only allowed in the Lobby."""
    if state.phase != PHASE_LOBBY:
        return ActionResult.fail(state, WRONG_PHASE, "Can only join during the lobby phase")

    if state.get_player(player_id):
        return ActionResult.fail(state, ALREADY_SEATED, f"Player {player_id} is already seated")

    if len(state.players) >= SEAT_COUNT:
        return ActionResult.fail(state, ROOM_FULL, f"Room is full ({SEAT_COUNT} players)")

    new_state = copy.deepcopy(state)
    new_state.players.append(Player(
        id=player_id,
        name=name,
        beans=initial_beans,
        is_bot=is_bot,
    ))
    new_state.increment_version()

    logger.info(f"{name} ({player_id}) joined room {state.id} at seat {len(new_state.players) - 1}")
    return ActionResult.ok(new_state)


def add_bot(
    state: GameState,
    bot_id: Optional[str] = None,
    initial_beans: int = INITIAL_BEANS
) -> ActionResult:
    """Seat a bot player named after how many bots are already seated."""
    bot_id = bot_id or f"{BOT_ID_PREFIX}{uuid.uuid4().hex[:8]}"
    bot_number = sum(1 for p in state.players if p.is_bot) + 1
    return join_room(state, bot_id, f"Bot {bot_number}", is_bot=True, initial_beans=initial_beans)


def disconnect_player(state: GameState, player_id: str, takeover: bool = True) -> ActionResult:
    """
    Handle a player's channel going away.

    In the Lobby the seat is freed. Later phases keep the seat; with
    `takeover` the bot policy drives it until the player reconnects.
    """
    player = state.get_player(player_id)
    if not player:
        return ActionResult.fail(state, NOT_SEATED, f"Player {player_id} is not seated")

    new_state = copy.deepcopy(state)

    if new_state.phase == PHASE_LOBBY:
        new_state.players = [p for p in new_state.players if p.id != player_id]
        new_state.current_turn_index = 0
        logger.info(f"{player.name} left the lobby of room {state.id}")
    else:
        seated = new_state.get_player(player_id)
        seated.connected = False
        seated.auto_pilot = takeover and not seated.is_bot
        logger.info(f"{player.name} disconnected from room {state.id} (auto_pilot={seated.auto_pilot})")

    new_state.increment_version()
    return ActionResult.ok(new_state)


def reconnect_player(state: GameState, player_id: str) -> ActionResult:
    """Hand a kept seat back to its returning player."""
    player = state.get_player(player_id)
    if not player:
        return ActionResult.fail(state, NOT_SEATED, f"Player {player_id} is not seated")

    if player.connected and not player.auto_pilot:
        return ActionResult.fail(state, ALREADY_SEATED, f"Player {player_id} is already connected")

    new_state = copy.deepcopy(state)
    seated = new_state.get_player(player_id)
    seated.connected = True
    seated.auto_pilot = False
    new_state.increment_version()

    logger.info(f"{player.name} reconnected to room {state.id}")
    return ActionResult.ok(new_state)


def _deal(state: GameState, rng) -> None:
    """Shuffle, deal and reset round fields in place. Seating is unchanged."""
    deck = shuffle_deck(create_deck(), rng)
    hands, kitty = deal_cards(deck)

    for player, hand in zip(state.players, hands):
        player.hand = hand
        player.role = ROLE_PEASANT
        player.ready = True
        player.last_action = ""

    state.phase = PHASE_DEALING
    state.kitty_cards = kitty
    state.discard = []
    state.landlord_id = None
    state.base_bid = 0
    state.multiplier = 1
    state.last_played_cards = []
    state.last_player_id = None
    state.winner_id = None
    state.laizi_rank = None
    state.bids_taken = 0
    state.current_turn_index = rng.randrange(SEAT_COUNT)


def start_game(state: GameState, rng: Optional[random.Random] = None) -> ActionResult:
    """
    Deal a new round from the Lobby or after a finished game.

    Args:
        state: Current game state
        rng: Optional random source for deterministic deals

    Returns:
        ActionResult with the state in the Dealing phase
    """
    if state.phase not in (PHASE_LOBBY, PHASE_GAME_OVER):
        return ActionResult.fail(state, WRONG_PHASE, f"Cannot start a game during {state.phase}")

    if len(state.players) != SEAT_COUNT:
        return ActionResult.fail(
            state,
            NOT_ENOUGH_PLAYERS,
            f"Need exactly {SEAT_COUNT} players (have {len(state.players)})"
        )

    new_state = copy.deepcopy(state)
    _deal(new_state, rng or random.Random())
    new_state.increment_version()

    first = new_state.current_player
    logger.info(f"Dealt room {state.id}; {first.name} bids first")
    return ActionResult.ok(new_state)


def begin_bidding(state: GameState) -> ActionResult:
    """Leave the Dealing phase once the deal has been shown."""
    if state.phase != PHASE_DEALING:
        return ActionResult.fail(state, WRONG_PHASE, f"Cannot open bidding during {state.phase}")

    new_state = copy.deepcopy(state)
    new_state.phase = PHASE_BIDDING
    new_state.increment_version()
    return ActionResult.ok(new_state)


def _finalize_landlord(state: GameState, rng) -> None:
    landlord = state.get_player(state.landlord_id)
    landlord.role = ROLE_LANDLORD
    landlord.hand = sort_hand(landlord.hand + state.kitty_cards)

    if state.config.enable_laizi:
        state.laizi_rank = rng.randint(WILDCARD_MIN_VALUE, WILDCARD_MAX_VALUE)

    state.phase = PHASE_PLAYING
    state.current_turn_index = state.seat_of(landlord.id)
    state.last_played_cards = []
    state.last_player_id = None

    logger.info(
        f"{landlord.name} is landlord in room {state.id} "
        f"(base bid {state.base_bid}, laizi {state.laizi_rank})"
    )


def place_bid(
    state: GameState,
    player_id: str,
    amount: int,
    rng: Optional[random.Random] = None
) -> ActionResult:
    """
    Apply a bid from the current bidder.

    A bid above the current base bid makes the bidder the provisional landlord;
    any other amount counts as no bid. A bid of 3 ends bidding at once. After
    every seat has bid once the highest bidder becomes landlord, or the round
    is redealt if nobody bid.
    """
    validation = validate_bid(state, player_id, amount)
    if not validation.valid:
        return ActionResult.fail(state, validation.error_code, validation.error_message)

    rng = rng or random.Random()
    new_state = copy.deepcopy(state)
    bidder = new_state.current_player

    if amount > new_state.base_bid:
        new_state.base_bid = amount
        new_state.landlord_id = player_id
        bidder.last_action = f"Bid {amount}"
    else:
        bidder.last_action = ACTION_LABEL_NO_BID
    new_state.bids_taken += 1

    if new_state.base_bid == MAX_BID:
        _finalize_landlord(new_state, rng)
    elif new_state.bids_taken >= SEAT_COUNT:
        if new_state.landlord_id:
            _finalize_landlord(new_state, rng)
        else:
            logger.info(f"Nobody bid in room {state.id}; redealing")
            _deal(new_state, rng)
    else:
        new_state.current_turn_index = next_seat(new_state, new_state.current_turn_index)

    new_state.increment_version()
    return ActionResult.ok(new_state)


def _advance_turn(state: GameState) -> None:
    state.current_turn_index = next_seat(state, state.current_turn_index)
    # Both others passed: the last player leads again
    if state.current_player.id == state.last_player_id:
        state.last_played_cards = []
        state.last_player_id = None


def _settle(state: GameState, winner: Player) -> None:
    """Score the finished round once and clear ready flags."""
    stake = state.base_bid * state.multiplier * STAKE_UNIT
    landlord_won = winner.role == ROLE_LANDLORD

    for player in state.players:
        if player.role == ROLE_LANDLORD:
            player.beans += 2 * stake if landlord_won else -2 * stake
        else:
            player.beans += -stake if landlord_won else stake
        player.ready = False

    state.phase = PHASE_GAME_OVER
    state.winner_id = winner.id
    logger.info(f"{winner.name} won room {state.id}; stake {stake}, landlord_won={landlord_won}")


def play_cards(
    state: GameState,
    player_id: str,
    card_ids: List[str],
    double_on_bomb: bool = True
) -> ActionResult:
    """
    Play cards for the current player. An empty selection is a pass.

    Args:
        state: Current game state
        player_id: ID of player making the play
        card_ids: IDs of the cards being played
        double_on_bomb: Double the multiplier for bombs and rockets

    Returns:
        ActionResult with the updated state
    """
    if not card_ids:
        return pass_turn(state, player_id)

    validation = validate_play(state, player_id, card_ids)
    if not validation.valid:
        return ActionResult.fail(state, validation.error_code, validation.error_message)

    new_state = copy.deepcopy(state)
    player = new_state.current_player
    played = set(card_ids)
    cards = [c for c in player.hand if c.id in played]

    player.hand = [c for c in player.hand if c.id not in played]
    player.last_action = ACTION_LABEL_PLAY
    new_state.discard.extend(cards)
    new_state.last_played_cards = cards
    new_state.last_player_id = player_id

    pattern = validation.pattern
    if double_on_bomb and pattern and (pattern.is_bomb or pattern.is_rocket):
        new_state.multiplier *= 2
        logger.info(f"{pattern.kind} by {player.name}; multiplier now {new_state.multiplier}")

    if not player.hand:
        _settle(new_state, player)
    else:
        _advance_turn(new_state)

    new_state.increment_version()
    return ActionResult.ok(new_state)


def pass_turn(state: GameState, player_id: str) -> ActionResult:
    """Pass the turn. Not allowed while leading."""
    validation = validate_play(state, player_id, [])
    if not validation.valid:
        return ActionResult.fail(state, validation.error_code, validation.error_message)

    new_state = copy.deepcopy(state)
    new_state.current_player.last_action = ACTION_LABEL_PASS
    _advance_turn(new_state)
    new_state.increment_version()
    return ActionResult.ok(new_state)


def restart_game(
    state: GameState,
    requester_id: str,
    rng: Optional[random.Random] = None,
    host_id: Optional[str] = None
) -> ActionResult:
    """Deal again with the same seating; honored only after a finished game."""
    if state.phase != PHASE_GAME_OVER:
        return ActionResult.fail(state, WRONG_PHASE, "Can only restart after the game is over")

    if not state.get_player(requester_id) and requester_id != host_id:
        return ActionResult.fail(state, ACTION_NOT_ALLOWED, f"{requester_id} cannot restart this room")

    return start_game(state, rng)
