"""
FastAPI routes that let a server process host Landlord rooms.

Each room is a GameHost; each websocket is a channel to one guest.
"""

import asyncio
import logging
import secrets
from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from ..advice import advise, advisor_from_env
from ..channel import Channel
from ..errors import ChannelClosedError
from ..host import GameHost
from ..rooms import generate_room_code, room_address, room_code_from_address, room_url
from ..rules import RuleConfig, rules_from_env
from ..serialization import get_public_room_info
from .events import decode_message, encode_message

logger = logging.getLogger(__name__)

# Application-level close codes
CLOSE_NOT_HOST = 4403
CLOSE_ROOM_NOT_FOUND = 4404
CLOSE_PEER_IN_USE = 4409

router = APIRouter()


class WebSocketChannel(Channel):
    """Host-side channel over a FastAPI websocket."""

    def __init__(self, websocket: WebSocket, peer_id: str):
        super().__init__(peer_id)
        self.websocket = websocket
        self.disconnected = False

    async def send(self, message: BaseModel) -> None:
        self._ensure_open()
        try:
            await self.websocket.send_text(encode_message(message).decode())
        except Exception as e:
            raise ChannelClosedError(f"Send to {self.peer_id} failed: {e}") from e

    async def serve(self):
        """Read messages until the socket goes away, then close the channel."""
        try:
            while True:
                try:
                    raw = await self.websocket.receive_text()
                except KeyError:
                    # Binary frames carry no text
                    logger.info(f"Ignoring non-text frame from {self.peer_id}")
                    continue
                try:
                    message = decode_message(raw)
                except ValueError as e:
                    logger.info(f"Ignoring malformed message from {self.peer_id}: {e}")
                    continue
                await self.deliver(message)
        except WebSocketDisconnect:
            logger.info(f"WebSocket for {self.peer_id} disconnected")
            self.disconnected = True
        except RuntimeError as e:
            logger.warning(f"WebSocket for {self.peer_id} is no longer usable: {e}")
            self.disconnected = True
        finally:
            await self.close()

    async def close(self, code: int = 1000):
        if self.closed:
            return
        await super().close()
        if self.disconnected:
            return
        self.disconnected = True
        try:
            await self.websocket.close(code=code)
        except RuntimeError as e:
            logger.debug(f"Socket for {self.peer_id} was already closed: {e}")


class CreateRoomRequest(BaseModel):
    host_name: str = Field(default="Host", min_length=1, max_length=30)
    enable_laizi: Optional[bool] = None
    is_dedicated: Optional[bool] = None
    base_url: Optional[str] = None


class RoomRegistry:
    """Hosts served by this process, keyed by channel address."""

    def __init__(self, rules: Optional[RuleConfig] = None):
        self.rules = rules
        self.hosts: Dict[str, GameHost] = {}
        self.host_tokens: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    def base_rules(self) -> RuleConfig:
        return self.rules or rules_from_env()

    async def create(self, host_name: str = "Host", **overrides) -> GameHost:
        rules = self.base_rules().model_copy(
            update={k: v for k, v in overrides.items() if v is not None}
        )
        async with self._lock:
            code = generate_room_code()
            while room_address(code) in self.hosts:
                code = generate_room_code()
            address = room_address(code)
            host = GameHost(address, rules=rules, host_name=host_name)
            await host.start()
            self.hosts[address] = host
            self.host_tokens[address] = secrets.token_urlsafe(16)
        logger.info(f"Room {code} created at {address}")
        return host

    def get(self, code_or_address: str) -> Optional[GameHost]:
        if code_or_address in self.hosts:
            return self.hosts[code_or_address]
        return self.hosts.get(room_address(code_or_address))

    def is_host_token(self, host: GameHost, token: Optional[str]) -> bool:
        """Whether `token` is the secret handed out when `host` was created."""
        expected = self.host_tokens.get(host.room_id)
        return bool(token) and expected is not None and secrets.compare_digest(token, expected)

    async def close(self, address: str):
        host = self.hosts.pop(address, None)
        self.host_tokens.pop(address, None)
        if host:
            await host.stop()

    async def close_all(self):
        for address in list(self.hosts):
            await self.close(address)


registry = RoomRegistry()


def _require_host(code: str) -> GameHost:
    host = registry.get(code)
    if not host:
        raise HTTPException(status_code=404, detail=f"Room {code} not found")
    return host


def _room_payload(host: GameHost, base_url: Optional[str] = None):
    code = room_code_from_address(host.room_id)
    payload = {
        "code": code,
        "address": host.room_id,
        "room": get_public_room_info(host.state),
    }
    if base_url:
        payload["url"] = room_url(base_url, code)
    return payload


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "rooms": len(registry.hosts),
        "connections": sum(len(h.channels) for h in registry.hosts.values()),
    }


@router.post("/rooms")
async def create_room_endpoint(request: CreateRoomRequest):
    host = await registry.create(
        request.host_name,
        enable_laizi=request.enable_laizi,
        is_dedicated=request.is_dedicated,
    )
    payload = _room_payload(host, request.base_url)
    # Only the creator learns the token that binds the host seat
    payload["host_id"] = host.host_id
    payload["host_token"] = registry.host_tokens[host.room_id]
    return payload


@router.get("/rooms/{code}")
async def get_room(code: str):
    return _room_payload(_require_host(code))


@router.post("/rooms/{code}/bots")
async def add_bot_endpoint(code: str):
    host = _require_host(code)
    await host.add_bot()
    await host.drain()
    return _room_payload(host)


@router.post("/rooms/{code}/start")
async def start_game_endpoint(code: str):
    host = _require_host(code)
    await host.start_game()
    await host.drain()
    return _room_payload(host)


@router.post("/rooms/{code}/restart")
async def restart_game_endpoint(code: str):
    host = _require_host(code)
    await host.restart()
    await host.drain()
    return _room_payload(host)


@router.get("/rooms/{code}/advice/{player_id}")
async def advice_endpoint(code: str, player_id: str):
    """Play advice for a seated player; never changes the room."""
    host = _require_host(code)
    state = host.state
    player = state.get_player(player_id)
    if not player:
        raise HTTPException(status_code=404, detail=f"Player {player_id} is not seated in {code}")

    text = await advise(player.hand, state, player_id, advisor_from_env(host.rules))
    return {"player_id": player_id, "advice": text}


@router.websocket("/ws/{address}/{peer_id}")
async def websocket_endpoint(websocket: WebSocket, address: str, peer_id: str, token: Optional[str] = None):
    """
    One guest connection. The guest's peer id is its player id.

    The host's own seat needs the `token` returned when the room was created,
    and a peer id with a live connection cannot be taken by a second one.
    """
    await websocket.accept()

    host = registry.get(address)
    if not host:
        logger.info(f"Rejecting {peer_id}: no room at {address}")
        await websocket.close(code=CLOSE_ROOM_NOT_FOUND)
        return

    if peer_id == host.host_id and not registry.is_host_token(host, token):
        logger.warning(f"Rejecting {peer_id} in {address}: missing or wrong host token")
        await websocket.close(code=CLOSE_NOT_HOST)
        return

    if host.is_attached(peer_id):
        logger.warning(f"Rejecting second connection for {peer_id} in {address}")
        await websocket.close(code=CLOSE_PEER_IN_USE)
        return

    channel = WebSocketChannel(websocket, peer_id)
    await host.attach(channel)
    await channel.open()
    logger.info(f"Player {peer_id} connected to room {address}")
    await channel.serve()
