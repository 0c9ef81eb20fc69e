"""
Tests for wire message parsing and the orjson codec.
"""

import orjson
import pytest
from landlord_engine.serialization import state_from_dict, state_to_dict
from landlord_engine.engine import create_room, join_room
from landlord_engine.shuffle import create_deck
from landlord_engine.ws.events import (
    ActionBid,
    ActionPlay,
    ActionRestart,
    CardPayload,
    GameStateUpdate,
    JoinRequest,
    create_play,
    decode_message,
    encode_message,
    parse_message,
)


def test_parse_each_message_type():
    assert isinstance(parse_message({"type": "JOIN_REQUEST", "name": "Alice"}), JoinRequest)
    assert parse_message({"type": "ACTION_BID", "amount": 2}).amount == 2
    assert isinstance(parse_message({"type": "ACTION_RESTART"}), ActionRestart)

    play = parse_message({"type": "ACTION_PLAY", "cards": [{"id": "card-4"}]})
    assert isinstance(play, ActionPlay)
    assert play.card_ids == ["card-4"]

    update = parse_message({"type": "GAME_STATE_UPDATE", "seq": 3, "state": {"id": "r"}})
    assert isinstance(update, GameStateUpdate)
    assert update.seq == 3


def test_empty_play_is_a_pass():
    assert parse_message({"type": "ACTION_PLAY"}).cards == []


@pytest.mark.parametrize("data", [
    {},
    {"type": ""},
    {"type": "CHAT", "text": "hi"},
    {"type": "JOIN_REQUEST"},
    {"type": "JOIN_REQUEST", "name": ""},
    {"type": "ACTION_BID", "amount": "lots"},
    {"type": "ACTION_PLAY", "cards": [{"suit": "♥"}]},
    {"type": "GAME_STATE_UPDATE", "seq": -1, "state": {}},
    ["ACTION_BID", 1],
])
def test_malformed_messages_raise_value_error(data):
    with pytest.raises(ValueError):
        parse_message(data)


def test_decode_rejects_bad_json():
    with pytest.raises(ValueError):
        decode_message(b"{not json")


def test_codec_keeps_type_tag_and_payload():
    encoded = encode_message(ActionBid(amount=3))
    raw = orjson.loads(encoded)
    assert raw["type"] == "ACTION_BID"
    assert raw["amount"] == 3

    decoded = decode_message(encoded)
    assert isinstance(decoded, ActionBid)
    assert decoded.amount == 3

    # Text frames decode the same way
    assert isinstance(decode_message(encoded.decode()), ActionBid)


def test_create_play_carries_card_payloads():
    card = create_deck()[10]
    message = create_play([card])

    assert message.cards == [CardPayload.from_card(card)]
    assert message.cards[0].value == card.value
    assert message.cards[0].suit == card.suit.value


def test_state_update_carries_whole_state():
    """Test a snapshot survives the wire and rebuilds the same GameState."""
    state = join_room(create_room("wire-room"), "a", "Alice").state
    update = GameStateUpdate(seq=state.version, state=state_to_dict(state))

    decoded = decode_message(encode_message(update))
    rebuilt = state_from_dict(decoded.state)

    assert decoded.seq == state.version
    assert rebuilt == state
