"""
Guest side of a room.

A guest never changes game state itself. It sends actions to the host and
replaces its local copy with every newer snapshot the host sends back.
"""

import logging
from typing import Callable, List, Optional, Sequence

from .channel import Channel
from .errors import ChannelClosedError
from .models import Card, GameState, Player
from .serialization import state_from_dict
from .ws.events import (
    ActionBid,
    ActionRestart,
    GameStateUpdate,
    JoinRequest,
    Message,
    create_play,
)

logger = logging.getLogger(__name__)


class GuestSession:
    """One guest's connection to a host."""

    def __init__(self, channel: Channel, player_id: str, name: str, join_on_open: bool = True):
        self.channel = channel
        self.player_id = player_id
        self.name = name
        self.join_on_open = join_on_open
        self.state: Optional[GameState] = None
        self.last_seq = -1
        self.joined = False
        self.ended = False
        self._listeners: List[Callable[[Optional[GameState]], None]] = []

        channel.on_open(self._on_open)
        channel.on_message(self._on_message)
        channel.on_close(self._on_close)

    def subscribe(self, listener: Callable[[Optional[GameState]], None]):
        """Call `listener` with the local state whenever it is replaced or reset."""
        self._listeners.append(listener)

    @property
    def me(self) -> Optional[Player]:
        if self.state is None:
            return None
        return self.state.get_player(self.player_id)

    @property
    def is_seated(self) -> bool:
        return self.me is not None

    @property
    def is_my_turn(self) -> bool:
        if self.state is None:
            return False
        current = self.state.current_player
        return current is not None and current.id == self.player_id

    # Outbound actions

    async def join(self):
        await self._send(JoinRequest(name=self.name))
        self.joined = True

    async def bid(self, amount: int):
        await self._send(ActionBid(amount=amount))

    async def play(self, cards: Sequence[Card]):
        await self._send(create_play(list(cards)))

    async def pass_turn(self):
        await self._send(create_play([]))

    async def restart(self):
        await self._send(ActionRestart())

    async def request_advice(self, advisor) -> str:
        """Ask the advisory service about the current hand; never changes state."""
        me = self.me
        if self.state is None or me is None:
            return ""
        return await advisor.advise(me.hand, self.state, self.player_id)

    async def _send(self, message):
        if self.ended:
            raise ChannelClosedError("Session with the host has ended")
        await self.channel.send(message)

    # Channel events

    async def _on_open(self):
        if self.join_on_open:
            await self.join()

    async def _on_message(self, message: Message):
        if not isinstance(message, GameStateUpdate):
            logger.debug(f"Guest {self.player_id} ignoring {message.type}")
            return

        if message.seq <= self.last_seq:
            logger.debug(f"Guest {self.player_id} discarding snapshot {message.seq} (have {self.last_seq})")
            return

        self.state = state_from_dict(message.state)
        self.last_seq = message.seq
        self._notify()

    async def _on_close(self):
        logger.warning(f"Guest {self.player_id} lost the host connection; leaving room")
        self.state = None
        self.last_seq = -1
        self.joined = False
        self.ended = True
        self._notify()

    def _notify(self):
        for listener in list(self._listeners):
            listener(self.state)
