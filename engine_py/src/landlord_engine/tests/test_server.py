"""
Tests for the FastAPI room routes, using a stand-in websocket.
"""

import asyncio

import orjson
import pytest
from fastapi import HTTPException, WebSocketDisconnect
from landlord_engine.advice import PLACEHOLDER_NO_KEY
from landlord_engine.constants import PHASE_BIDDING, PHASE_DEALING, PHASE_LOBBY
from landlord_engine.main import app, lifespan
from landlord_engine.rooms import room_code_from_address
from landlord_engine.rules import create_rules
from landlord_engine.ws import server
from landlord_engine.ws.events import JoinRequest, encode_message
from landlord_engine.ws.server import (
    CLOSE_NOT_HOST,
    CLOSE_PEER_IN_USE,
    CLOSE_ROOM_NOT_FOUND,
    CreateRoomRequest,
    RoomRegistry,
    add_bot_endpoint,
    advice_endpoint,
    create_room_endpoint,
    get_room,
    health_check,
    restart_game_endpoint,
    start_game_endpoint,
    websocket_endpoint,
)


# Frames that make receive_text fail the way Starlette does
BINARY = object()
BROKEN = object()


class DummyWS:
    def __init__(self):
        self.sent = []
        self.inbox = asyncio.Queue()
        self.accepted = False
        self.close_code = None

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.close_code is not None:
            raise RuntimeError("socket closed")
        self.sent.append(orjson.loads(text))

    async def receive_text(self):
        raw = await self.inbox.get()
        if raw is None:
            raise WebSocketDisconnect(code=1000)
        if raw is BINARY:
            raise KeyError("text")
        if raw is BROKEN:
            raise RuntimeError("WebSocket is not connected")
        return raw

    async def close(self, code=1000):
        self.close_code = code
        self.inbox.put_nowait(None)

    def push(self, message):
        self.inbox.put_nowait(encode_message(message).decode())

    def push_raw(self, text):
        self.inbox.put_nowait(text)

    def disconnect(self):
        self.inbox.put_nowait(None)


@pytest.fixture
def registry(monkeypatch):
    rooms = RoomRegistry(rules=create_rules(deal_delay=0, bot_think_delay=30))
    monkeypatch.setattr(server, "registry", rooms)
    return rooms


async def wait_until(predicate, timeout=5.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(poll(), timeout)


@pytest.mark.asyncio
async def test_unknown_room_is_closed(registry):
    ws = DummyWS()
    await websocket_endpoint(ws, "ddz-ZZZZZZ", "alice")

    assert ws.accepted
    assert ws.close_code == CLOSE_ROOM_NOT_FOUND
    assert ws.sent == []


@pytest.mark.asyncio
async def test_guest_joins_over_websocket(registry):
    host = await registry.create("Hana")
    ws = DummyWS()
    task = asyncio.create_task(websocket_endpoint(ws, host.room_id, "alice"))

    ws.push(JoinRequest(name="Alice"))
    await wait_until(lambda: host.state.get_player("alice") is not None)
    await host.drain()

    assert ws.sent[0]["type"] == "GAME_STATE_UPDATE"
    assert ws.sent[-1]["seq"] == host.state.version
    assert [p["id"] for p in ws.sent[-1]["state"]["players"]] == ["host", "alice"]

    # Junk on the socket is dropped without touching the room
    version = host.state.version
    ws.push_raw("{not json")
    ws.push_raw('{"type": "CHAT", "text": "hi"}')
    ws.push(JoinRequest(name="Alice"))
    await asyncio.sleep(0.05)
    await host.drain()
    assert host.state.version == version

    # Leaving the lobby frees the seat
    ws.disconnect()
    await asyncio.wait_for(task, 5.0)
    await host.drain()
    assert host.state.get_player("alice") is None
    assert "alice" not in host.channels

    await registry.close_all()


@pytest.mark.asyncio
async def test_health_counts_rooms(registry):
    await registry.create("Hana")
    health = await health_check()

    assert health["status"] == "healthy"
    assert health["rooms"] == 1
    assert health["connections"] == 0

    await registry.close_all()


@pytest.mark.asyncio
async def test_create_room_endpoint(registry):
    payload = await create_room_endpoint(CreateRoomRequest(
        host_name="Hana",
        enable_laizi=True,
        base_url="https://example.com/play",
    ))

    assert payload["address"] == f"ddz-{payload['code']}"
    assert payload["url"] == f"https://example.com/play?room={payload['code']}"
    assert payload["room"]["laizi"] is True
    assert payload["room"]["player_count"] == 1

    fetched = await get_room(payload["code"].lower())
    assert fetched["address"] == payload["address"]
    assert "host_token" not in fetched
    assert payload["host_id"] == "host"
    assert payload["host_token"]

    await registry.close_all()


@pytest.mark.asyncio
async def test_missing_room_is_404(registry):
    with pytest.raises(HTTPException) as exc:
        await get_room("ZZZZZZ")
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_dedicated_room_fills_with_bots_and_starts(registry):
    payload = await create_room_endpoint(CreateRoomRequest(is_dedicated=True))
    code = payload["code"]
    assert payload["room"]["player_count"] == 0

    # Restarting is refused before any game has finished
    restarted = await restart_game_endpoint(code)
    assert restarted["room"]["phase"] == PHASE_LOBBY

    for _ in range(3):
        payload = await add_bot_endpoint(code)
    assert payload["room"]["player_count"] == 3
    assert all(p["is_bot"] for p in payload["room"]["players"])
    assert not payload["room"]["joinable"]

    started = await start_game_endpoint(code)
    assert started["room"]["phase"] in (PHASE_DEALING, PHASE_BIDDING)

    await registry.close_all()
    assert registry.hosts == {}


@pytest.mark.asyncio
async def test_second_connection_for_same_peer_is_refused(registry):
    host = await registry.create("Hana")
    first = DummyWS()
    first_task = asyncio.create_task(websocket_endpoint(first, host.room_id, "alice"))
    first.push(JoinRequest(name="Alice"))
    await wait_until(lambda: host.state.get_player("alice") is not None)
    await host.drain()

    second = DummyWS()
    await websocket_endpoint(second, host.room_id, "alice")

    assert second.close_code == CLOSE_PEER_IN_USE
    assert second.sent == []
    assert host.channels["alice"].websocket is first

    # The original connection keeps its seat and its updates
    seen = len(first.sent)
    await host.add_bot()
    await host.drain()
    assert len(first.sent) == seen + 1
    assert first.close_code is None

    first.disconnect()
    await asyncio.wait_for(first_task, 5.0)
    await registry.close_all()


@pytest.mark.asyncio
async def test_host_seat_needs_token(registry):
    payload = await create_room_endpoint(CreateRoomRequest(host_name="Hana"))
    host = registry.get(payload["code"])

    intruder = DummyWS()
    await websocket_endpoint(intruder, host.room_id, "host")
    assert intruder.close_code == CLOSE_NOT_HOST

    wrong = DummyWS()
    await websocket_endpoint(wrong, host.room_id, "host", token="guess")
    assert wrong.close_code == CLOSE_NOT_HOST
    assert not host.is_attached("host")

    owner = DummyWS()
    task = asyncio.create_task(websocket_endpoint(owner, host.room_id, "host", token=payload["host_token"]))
    await wait_until(lambda: host.is_attached("host"))
    assert owner.close_code is None

    owner.disconnect()
    await asyncio.wait_for(task, 5.0)
    await registry.close_all()


@pytest.mark.asyncio
async def test_unreadable_frames_do_not_escape(registry):
    host = await registry.create("Hana")
    ws = DummyWS()
    task = asyncio.create_task(websocket_endpoint(ws, host.room_id, "alice"))

    # A binary frame is skipped and reading goes on
    ws.push_raw(BINARY)
    ws.push(JoinRequest(name="Alice"))
    await wait_until(lambda: host.state.get_player("alice") is not None)

    # A broken socket ends the connection without raising
    ws.push_raw(BROKEN)
    await asyncio.wait_for(task, 5.0)
    await host.drain()
    assert host.state.get_player("alice") is None

    await registry.close_all()


@pytest.mark.asyncio
async def test_advice_endpoint(registry, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    host = await registry.create("Hana")

    reply = await advice_endpoint(room_code_from_address(host.room_id), "host")
    assert reply == {"player_id": "host", "advice": PLACEHOLDER_NO_KEY}

    with pytest.raises(HTTPException) as exc:
        await advice_endpoint(room_code_from_address(host.room_id), "nobody")
    assert exc.value.status_code == 404

    await registry.close_all()


@pytest.mark.asyncio
async def test_lifespan_closes_rooms(registry):
    host = await registry.create("Hana")

    async with lifespan(app):
        assert host.running

    assert registry.hosts == {}
    assert not host.running
