"""
Guest-side channel over the `websockets` client.
"""

import asyncio
import logging
from typing import Optional

import websockets
from pydantic import BaseModel

from ..channel import Channel
from ..errors import ChannelClosedError
from ..guest import GuestSession
from ..rooms import room_address
from .events import decode_message, encode_message

logger = logging.getLogger(__name__)


class ClientChannel(Channel):
    """Channel to the host; `peer_id` is the host's address."""

    def __init__(self, connection, peer_id: str):
        super().__init__(peer_id)
        self.connection = connection
        self._reader: Optional[asyncio.Task] = None

    async def send(self, message: BaseModel) -> None:
        self._ensure_open()
        try:
            await self.connection.send(encode_message(message).decode())
        except websockets.exceptions.ConnectionClosed as e:
            raise ChannelClosedError(f"Host connection closed: {e}") from e

    def start_reading(self):
        if self._reader is None:
            self._reader = asyncio.create_task(self._read())

    async def _read(self):
        try:
            async for raw in self.connection:
                try:
                    message = decode_message(raw)
                except ValueError as e:
                    logger.warning(f"Ignoring malformed message from host: {e}")
                    continue
                await self.deliver(message)
        except websockets.exceptions.ConnectionClosed as e:
            logger.warning(f"Host connection lost: {e}")
        finally:
            await Channel.close(self)

    async def close(self):
        if self.closed:
            return
        await self.connection.close()
        await super().close()


def ws_url(server_url: str, code: str, player_id: str) -> str:
    """Websocket URL for joining room `code` as `player_id`."""
    return f"{server_url.rstrip('/')}/ws/{room_address(code)}/{player_id}"


async def connect_guest(server_url: str, code: str, player_id: str, name: str) -> GuestSession:
    """
    Connect to a served room and send the join request.

    Args:
        server_url: Base websocket URL, e.g. ws://localhost:8000
        code: Room code shared by the host
        player_id: This guest's stable id
        name: Display name

    Returns:
        The joined GuestSession
    """
    uri = ws_url(server_url, code, player_id)
    logger.info(f"Connecting to {uri}...")
    connection = await websockets.connect(uri)

    channel = ClientChannel(connection, room_address(code))
    session = GuestSession(channel, player_id, name)
    channel.start_reading()
    await channel.open()
    return session
