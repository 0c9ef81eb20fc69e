"""
Message channel abstraction between the host and one remote peer.

A channel only moves message models; the game never sees the transport.
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, Tuple

from pydantic import BaseModel

from .errors import ChannelClosedError
from .ws.events import Message, decode_message, encode_message

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Message], Awaitable[None]]
LifecycleHandler = Callable[[], Awaitable[None]]


class Channel(ABC):
    """
    Ordered, reliable message pipe to a single peer.

    Transports call `open`, `deliver` and `close`; users register handlers
    with `on_open`, `on_message` and `on_close`.
    """

    def __init__(self, peer_id: str):
        self.peer_id = peer_id
        self.is_open = False
        self.closed = False
        self._message_handlers: List[MessageHandler] = []
        self._open_handlers: List[LifecycleHandler] = []
        self._close_handlers: List[LifecycleHandler] = []

    @abstractmethod
    async def send(self, message: BaseModel) -> None:
        """
        Send a message to the peer.

        Raises:
            ChannelClosedError: If the channel has been closed
        """
        pass

    def on_message(self, handler: MessageHandler):
        self._message_handlers.append(handler)

    def on_open(self, handler: LifecycleHandler):
        self._open_handlers.append(handler)

    def on_close(self, handler: LifecycleHandler):
        self._close_handlers.append(handler)

    async def open(self):
        if self.is_open or self.closed:
            return
        self.is_open = True
        for handler in list(self._open_handlers):
            await handler()

    async def deliver(self, message: Message):
        """Hand an inbound message to every registered handler."""
        if self.closed:
            logger.debug(f"Dropping message for closed channel {self.peer_id}")
            return
        for handler in list(self._message_handlers):
            await handler(message)

    async def close(self):
        if self.closed:
            return
        self.closed = True
        self.is_open = False
        for handler in list(self._close_handlers):
            await handler()

    def _ensure_open(self):
        if self.closed:
            raise ChannelClosedError(f"Channel to {self.peer_id} is closed")


class LoopbackChannel(Channel):
    """
    In-process channel; one end of a pair.

    Messages go through the wire codec so both ends see exactly what a
    network peer would.
    """

    def __init__(self, peer_id: str):
        super().__init__(peer_id)
        self.remote: Optional['LoopbackChannel'] = None

    @classmethod
    def pair(cls, host_side_peer: str, guest_side_peer: str = "host") -> Tuple['LoopbackChannel', 'LoopbackChannel']:
        """
        Create two connected ends.

        Args:
            host_side_peer: Peer id the host sees (the guest's identity)
            guest_side_peer: Peer id the guest sees

        Returns:
            (end held by the host, end held by the guest)
        """
        host_end = cls(host_side_peer)
        guest_end = cls(guest_side_peer)
        host_end.remote = guest_end
        guest_end.remote = host_end
        return host_end, guest_end

    async def send(self, message: BaseModel) -> None:
        self._ensure_open()
        if self.remote is None or self.remote.closed:
            raise ChannelClosedError(f"Peer {self.peer_id} is gone")
        await self.remote.deliver(decode_message(encode_message(message)))

    async def close(self):
        if self.closed:
            return
        await super().close()
        if self.remote is not None:
            await self.remote.close()
