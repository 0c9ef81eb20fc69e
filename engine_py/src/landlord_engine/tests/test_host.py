"""
Tests for the authoritative host, driven over loopback channels.
"""

import asyncio
import random

import pytest
from landlord_engine.channel import LoopbackChannel
from landlord_engine.constants import (
    INITIAL_BEANS,
    PHASE_BIDDING,
    PHASE_GAME_OVER,
    PHASE_LOBBY,
    PHASE_PLAYING,
)
from landlord_engine.guest import GuestSession
from landlord_engine.host import TIMER_TURN, GameHost, TimerFired
from landlord_engine.models import GameState, Player
from landlord_engine.rules import create_rules
from landlord_engine.shuffle import create_deck, validate_deck_integrity
from landlord_engine.ws.events import ActionBid, ActionPlay, CardPayload

DECK = create_deck()


def fast_rules(**overrides):
    options = {"deal_delay": 0, "bot_think_delay": 0}
    options.update(overrides)
    return create_rules(**options)


async def wait_until(predicate, timeout=5.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(poll(), timeout)


async def connect(host, player_id, name, join_on_open=True):
    """Attach a loopback guest to the host and open its end."""
    host_end, guest_end = LoopbackChannel.pair(player_id)
    session = GuestSession(guest_end, player_id, name, join_on_open=join_on_open)
    await host.attach(host_end)
    await guest_end.open()
    return session


@pytest.mark.asyncio
async def test_bot_game_runs_to_completion():
    """Test three bots in a dedicated room play a whole round on their own."""
    host = GameHost("bot-room", fast_rules(is_dedicated=True), rng=random.Random(7))
    await host.start()

    versions = []
    host.subscribe(lambda state: versions.append(state.version))
    spectator = await connect(host, "watcher", "Watcher", join_on_open=False)

    for _ in range(3):
        await host.add_bot()
    await host.start_game()

    await wait_until(lambda: host.state.phase == PHASE_GAME_OVER, timeout=10.0)
    await host.drain()

    state = host.state
    winner = state.get_player(state.winner_id)
    assert winner is not None
    assert winner.hand == []
    assert sum(p.beans for p in state.players) == 3 * INITIAL_BEANS
    assert validate_deck_integrity(state)

    # Every accepted change got its own, increasing version
    assert versions == sorted(set(versions))

    assert not spectator.is_seated
    assert spectator.state.version == state.version
    assert spectator.state.phase == PHASE_GAME_OVER

    await host.stop()


@pytest.mark.asyncio
async def test_guests_join_until_full():
    host = GameHost("join-room", fast_rules(), host_name="Hana")
    await host.start()

    alice = await connect(host, "alice", "Alice")
    bob = await connect(host, "bob", "Bob")
    carol = await connect(host, "carol", "Carol")
    await host.drain()

    assert [p.id for p in host.state.players] == ["host", "alice", "bob"]
    assert host.state.players[0].name == "Hana (Host)"

    assert alice.is_seated and bob.is_seated
    assert alice.state == host.state
    assert bob.last_seq == host.state.version

    # The room was full; carol watches without a seat
    assert not carol.is_seated
    assert carol.state.version == host.state.version

    await host.stop()


@pytest.mark.asyncio
async def test_late_attach_gets_snapshot():
    host = GameHost("late-room", fast_rules())
    await host.start()
    await connect(host, "alice", "Alice")
    await host.drain()

    late = await connect(host, "bob", "Bob", join_on_open=False)
    await host.drain()

    assert late.state is not None
    assert late.last_seq == host.state.version
    assert late.state.get_player("alice") is not None

    await host.stop()


@pytest.mark.asyncio
async def test_duplicate_join_is_ignored():
    host = GameHost("dup-room", fast_rules())
    await host.start()
    alice = await connect(host, "alice", "Alice")
    await host.drain()
    version = host.state.version

    await alice.join()
    await host.drain()

    assert host.state.version == version
    assert len(host.state.players) == 2

    await host.stop()


@pytest.mark.asyncio
async def test_second_channel_for_live_peer_is_refused():
    """Test a second channel using a connected player's id cannot take the seat."""
    host = GameHost("dup-peer-room", fast_rules())
    await host.start()
    alice = await connect(host, "alice", "Alice")
    await host.drain()
    original = host.channels["alice"]

    impostor = await connect(host, "alice", "Mallory")
    await impostor.bid(3)
    await host.drain()

    assert host.channels["alice"] is original
    assert impostor.ended
    assert host.state.get_player("alice").name == "Alice"
    assert host.state.get_player("alice").connected

    # The original channel still gets every update
    await host.add_bot()
    await host.drain()
    assert alice.last_seq == host.state.version
    assert not alice.ended

    await host.stop()


@pytest.mark.asyncio
async def test_out_of_turn_action_is_ignored():
    """Test a bid from a seat whose turn it is not changes nothing."""
    host = GameHost("turn-room", fast_rules(), rng=random.Random(3))
    await host.start()
    await connect(host, "alice", "Alice")
    await connect(host, "bob", "Bob")
    await host.start_game()
    await wait_until(lambda: host.state.phase == PHASE_BIDDING)

    current = host.state.current_player.id
    other = next(p.id for p in host.state.players if p.id != current)
    version = host.state.version

    await host.submit(other, ActionBid(amount=3))
    await host.drain()
    assert host.state.version == version

    await host.submit(current, ActionBid(amount=3))
    await host.drain()
    assert host.state.phase == PHASE_PLAYING
    assert host.state.landlord_id == current

    await host.stop()


@pytest.mark.asyncio
async def test_stale_timer_is_discarded():
    host = GameHost("timer-room", fast_rules(is_dedicated=True, bot_think_delay=30), rng=random.Random(5))
    await host.start()
    for _ in range(3):
        await host.add_bot()
    await host.start_game()
    await wait_until(lambda: host.state.phase == PHASE_BIDDING)
    await host.drain()

    version = host.state.version
    await host._enqueue(TimerFired(TIMER_TURN, version - 1))
    await host.drain()
    assert host.state.version == version

    # A timer for the current version makes the bot act
    await host._enqueue(TimerFired(TIMER_TURN, version))
    await host.drain()
    assert host.state.version == version + 1

    await host.stop()


@pytest.mark.asyncio
async def test_lobby_disconnect_frees_seat():
    host = GameHost("leave-room", fast_rules())
    await host.start()
    alice = await connect(host, "alice", "Alice")
    await host.drain()
    assert host.state.get_player("alice") is not None

    await alice.channel.close()
    await host.drain()

    assert host.state.get_player("alice") is None
    assert "alice" not in host.channels
    assert alice.ended
    assert alice.state is None

    await host.stop()


@pytest.mark.asyncio
async def test_disconnect_mid_game_bot_takes_over():
    """Test the game still finishes after a human drops out mid-round."""
    host = GameHost("takeover-room", fast_rules(is_dedicated=True), rng=random.Random(11))
    await host.start()
    alice = await connect(host, "alice", "Alice")
    await host.add_bot()
    await host.add_bot()
    await host.start_game()
    await wait_until(lambda: host.state.phase != PHASE_LOBBY)

    await alice.channel.close()
    await wait_until(lambda: host.state.phase == PHASE_GAME_OVER, timeout=10.0)

    seat = host.state.get_player("alice")
    assert seat is not None
    assert not seat.connected
    assert seat.auto_pilot
    assert alice.ended

    await host.stop()


@pytest.mark.asyncio
async def test_reconnect_hands_seat_back():
    host = GameHost("back-room", fast_rules(is_dedicated=True, bot_think_delay=30), rng=random.Random(2))
    await host.start()
    alice = await connect(host, "alice", "Alice")
    await host.add_bot()
    await host.add_bot()
    await host.start_game()
    await wait_until(lambda: host.state.phase == PHASE_BIDDING)

    await alice.channel.close()
    await host.drain()
    assert host.state.get_player("alice").auto_pilot
    hand = list(host.state.get_player("alice").hand)

    again = await connect(host, "alice", "Alice")
    await host.drain()

    seat = host.state.get_player("alice")
    assert seat.connected
    assert not seat.auto_pilot
    assert seat.hand == hand
    assert again.me.hand == hand

    await host.stop()


def _card(value, skip=0):
    return [c for c in DECK if c.value == value][skip]


@pytest.mark.asyncio
async def test_play_is_resolved_by_card_id():
    """Test the host ignores everything but the id in a played card."""
    host = GameHost("forge-room", fast_rules(is_dedicated=True))
    three = _card(3)
    host.state = GameState(
        id="forge-room",
        phase=PHASE_PLAYING,
        players=[
            Player(id="alice", name="Alice", hand=[three, _card(9)]),
            Player(id="bob", name="Bob", hand=[_card(10)]),
            Player(id="carol", name="Carol", hand=[_card(11)]),
        ],
        landlord_id="alice",
        base_bid=1,
    )
    await host.start()
    alice = await connect(host, "alice", "Alice", join_on_open=False)

    forged = CardPayload(id=three.id, rank=17, label="Big Joker", value=17)
    await alice.channel.send(ActionPlay(cards=[forged]))
    await host.drain()

    assert host.state.last_played_cards == [three]
    assert host.state.current_player.id == "bob"

    # An id that is not in the hand is rejected
    version = host.state.version
    await host.submit("bob", ActionPlay(cards=[CardPayload(id=_card(15).id)]))
    await host.drain()
    assert host.state.version == version

    await host.stop()
