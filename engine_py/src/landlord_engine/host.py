"""
Authoritative game host.

The host owns the only mutable copy of the GameState. Everything that can
change it (guest messages, local host commands, bot timers, disconnects)
goes through a single inbox and is applied one item at a time in arrival
order. After every accepted change the whole state is sent to every
attached channel.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .bots.base import BaseBot, BotAction
from .bots.heuristic import HeuristicBot
from .channel import Channel
from .comparator import lowest_card
from .constants import PHASE_BIDDING, PHASE_DEALING, PHASE_PLAYING
from .engine import (
    ActionResult,
    add_bot,
    begin_bidding,
    create_room,
    disconnect_player,
    join_room,
    pass_turn,
    place_bid,
    play_cards,
    reconnect_player,
    restart_game,
    start_game,
)
from .errors import ChannelClosedError
from .models import GameState
from .rules import RuleConfig, default_rules
from .scheduler import TurnScheduler
from .serialization import state_to_dict
from .ws.events import (
    ActionBid,
    ActionPlay,
    ActionRestart,
    GameStateUpdate,
    JoinRequest,
    Message,
    create_state_update,
)

logger = logging.getLogger(__name__)

DEFAULT_HOST_ID = "host"

TIMER_DEAL = "deal"
TIMER_TURN = "turn"

COMMAND_ADD_BOT = "add_bot"
COMMAND_START = "start"
COMMAND_RESTART = "restart"


@dataclass
class PeerAttached:
    channel: Channel


@dataclass
class PeerClosed:
    peer_id: str
    channel: Channel


@dataclass
class InboundMessage:
    peer_id: str
    message: Message
    # None for messages the host submits for its own seat
    channel: Optional[Channel] = None


@dataclass
class TimerFired:
    purpose: str
    version: int


@dataclass
class HostCommand:
    name: str


class GameHost:
    """Runs one room: applies actions, fans out snapshots, drives bots."""

    def __init__(
        self,
        room_id: str,
        rules: Optional[RuleConfig] = None,
        host_id: str = DEFAULT_HOST_ID,
        host_name: Optional[str] = None,
        rng: Optional[random.Random] = None
    ):
        self.room_id = room_id
        self.rules = rules or default_rules
        self.host_id = host_id
        self.rng = rng or random.Random()
        self.state: GameState = create_room(room_id, self.rules, host_id, host_name or "Host")
        self.channels: Dict[str, Channel] = {}
        self.bots: Dict[str, BaseBot] = {}
        self.scheduler = TurnScheduler()
        self._inbox: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[GameState], None]] = []

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self):
        """Start the inbox worker. Must be called from a running event loop."""
        if self.running:
            return
        self._inbox = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())
        logger.info(f"🚀 Host for room {self.room_id} started")

    async def stop(self):
        self.scheduler.cancel_all()
        if self._worker:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        channels = list(self.channels.values())
        self.channels.clear()
        for channel in channels:
            await channel.close()
        logger.info(f"Host for room {self.room_id} stopped")

    # Public entry points; all of them only enqueue.

    async def attach(self, channel: Channel):
        """
        Start serving a peer. The peer gets the current snapshot right away
        and every later one.
        """
        peer_id = channel.peer_id

        async def on_message(message: Message):
            await self._enqueue(InboundMessage(peer_id, message, channel))

        async def on_close():
            await self._enqueue(PeerClosed(peer_id, channel))

        channel.on_message(on_message)
        channel.on_close(on_close)
        await self._enqueue(PeerAttached(channel))

    async def submit(self, peer_id: str, message: Message):
        """Queue a message as if it had arrived from `peer_id` (used for the host's own seat)."""
        await self._enqueue(InboundMessage(peer_id, message))

    async def add_bot(self):
        await self._enqueue(HostCommand(COMMAND_ADD_BOT))

    async def start_game(self):
        await self._enqueue(HostCommand(COMMAND_START))

    async def restart(self):
        await self._enqueue(HostCommand(COMMAND_RESTART))

    async def drain(self):
        """Wait until everything queued so far has been applied."""
        if self._inbox is not None:
            await self._inbox.join()

    def subscribe(self, listener: Callable[[GameState], None]):
        """Call `listener` with the new state after every accepted change."""
        self._listeners.append(listener)

    def is_attached(self, peer_id: str) -> bool:
        """Whether a live channel is already serving `peer_id`."""
        channel = self.channels.get(peer_id)
        return channel is not None and not channel.closed

    def snapshot(self) -> GameStateUpdate:
        return create_state_update(self.state.version, state_to_dict(self.state))

    # Inbox worker

    async def _enqueue(self, item):
        if not self.running:
            logger.debug(f"Host for room {self.room_id} is not running; dropping {type(item).__name__}")
            return
        self._inbox.put_nowait(item)

    async def _run(self):
        while True:
            item = await self._inbox.get()
            try:
                await self._process(item)
            except Exception as e:
                logger.exception(f"💥 Error processing {type(item).__name__} in room {self.room_id}: {e}")
            finally:
                self._inbox.task_done()

    async def _process(self, item):
        if isinstance(item, InboundMessage):
            if item.channel is not None and self.channels.get(item.peer_id) is not item.channel:
                logger.debug(f"Ignoring {item.message.type} from a channel not serving {item.peer_id}")
                return
            await self._handle_message(item.peer_id, item.message)
        elif isinstance(item, TimerFired):
            await self._handle_timer(item)
        elif isinstance(item, HostCommand):
            await self._handle_command(item.name)
        elif isinstance(item, PeerAttached):
            await self._handle_attach(item.channel)
        elif isinstance(item, PeerClosed):
            await self._handle_close(item.peer_id, item.channel)
        else:
            raise ValueError(f"Unhandled inbox item: {item!r}")

    async def _handle_message(self, peer_id: str, message: Message):
        if isinstance(message, JoinRequest):
            result = self._join(peer_id, message.name)
        elif isinstance(message, ActionBid):
            result = place_bid(self.state, peer_id, message.amount, self.rng)
        elif isinstance(message, ActionPlay):
            result = play_cards(self.state, peer_id, message.card_ids, self.rules.double_on_bomb)
        elif isinstance(message, ActionRestart):
            result = restart_game(self.state, peer_id, self.rng, self.host_id)
        elif isinstance(message, GameStateUpdate):
            logger.warning(f"Ignoring state update sent by guest {peer_id}")
            return
        else:
            raise ValueError(f"Unhandled message type: {type(message)}")

        await self._apply(result, f"{message.type} from {peer_id}")

    def _join(self, peer_id: str, name: str) -> ActionResult:
        seated = self.state.get_player(peer_id)
        if seated and (not seated.connected or seated.auto_pilot):
            return reconnect_player(self.state, peer_id)
        return join_room(self.state, peer_id, name, initial_beans=self.rules.initial_beans)

    async def _handle_command(self, name: str):
        if name == COMMAND_ADD_BOT:
            result = add_bot(self.state, initial_beans=self.rules.initial_beans)
            if result.success:
                bot_id = result.state.players[-1].id
                self.bots[bot_id] = HeuristicBot(bot_id)
        elif name == COMMAND_START:
            result = start_game(self.state, self.rng)
        elif name == COMMAND_RESTART:
            result = restart_game(self.state, self.host_id, self.rng, self.host_id)
        else:
            raise ValueError(f"Unknown host command: {name}")

        await self._apply(result, f"host command {name}")

    async def _handle_attach(self, channel: Channel):
        if channel.closed:
            return
        previous = self.channels.get(channel.peer_id)
        if previous is not None and previous is not channel and not previous.closed:
            logger.warning(f"Refusing second channel for {channel.peer_id} in room {self.room_id}")
            await channel.close()
            return
        self.channels[channel.peer_id] = channel
        await self._send(channel.peer_id, channel, self.snapshot())

    async def _handle_close(self, peer_id: str, channel: Channel):
        current = self.channels.get(peer_id)
        if current is not None and current is not channel:
            logger.debug(f"Ignoring close of a replaced channel for {peer_id}")
            return
        self.channels.pop(peer_id, None)
        logger.info(f"Channel to {peer_id} closed in room {self.room_id}")

        if self.state.get_player(peer_id) is None:
            return
        result = disconnect_player(self.state, peer_id, takeover=self.rules.bot_takeover_on_disconnect)
        await self._apply(result, f"disconnect of {peer_id}")

    async def _handle_timer(self, timer: TimerFired):
        if timer.version != self.state.version:
            logger.debug(f"Discarding stale {timer.purpose} timer (v{timer.version}, now v{self.state.version})")
            return

        if timer.purpose == TIMER_DEAL:
            await self._apply(begin_bidding(self.state), "deal timer")
        elif timer.purpose == TIMER_TURN:
            await self._run_bot_turn()
        else:
            raise ValueError(f"Unknown timer: {timer.purpose}")

    # Bots

    def _bot_for(self, player_id: str) -> BaseBot:
        bot = self.bots.get(player_id)
        if bot is None:
            bot = HeuristicBot(player_id)
            self.bots[player_id] = bot
        return bot

    def _apply_bot_action(self, player_id: str, action: BotAction) -> ActionResult:
        if action.type == 'bid':
            return place_bid(self.state, player_id, action.data['amount'], self.rng)
        if action.type == 'play':
            return play_cards(self.state, player_id, action.data['cards'], self.rules.double_on_bomb)
        if action.type == 'pass':
            return pass_turn(self.state, player_id)
        raise ValueError(f"Unknown bot action: {action.type}")

    def _bot_fallback(self, player_id: str) -> ActionResult:
        """Pass, or lead the lowest single when passing is not allowed."""
        result = pass_turn(self.state, player_id)
        if result.success:
            return result
        hand = self.state.get_player(player_id).hand
        return play_cards(self.state, player_id, [lowest_card(hand).id], self.rules.double_on_bomb)

    async def _run_bot_turn(self):
        player = self.state.current_player
        if player is None or not player.bot_controlled:
            return
        if self.state.phase not in (PHASE_BIDDING, PHASE_PLAYING):
            return

        action = self._bot_for(player.id).choose_action(self.state)
        if action is None:
            logger.warning(f"Bot {player.name} returned no action")
            return

        logger.info(f"🤖 Bot {player.name} chose: {action.type} {action.data}")
        result = self._apply_bot_action(player.id, action)

        if not result.success and self.state.phase == PHASE_PLAYING:
            logger.warning(f"❌ Bot {player.name} action rejected ({result.error_message}); falling back")
            result = self._bot_fallback(player.id)

        await self._apply(result, f"bot action from {player.id}")

    # State fan-out

    async def _apply(self, result: ActionResult, label: str) -> bool:
        if not result.success:
            logger.info(f"Ignored {label}: [{result.error_code}] {result.error_message}")
            return False

        self.state = result.state
        await self._broadcast()
        self._schedule_next()
        return True

    async def _send(self, peer_id: str, channel: Channel, update: GameStateUpdate):
        try:
            await channel.send(update)
        except ChannelClosedError as e:
            logger.warning(f"Dropping channel to {peer_id}: {e}")
            if self.channels.get(peer_id) is channel:
                del self.channels[peer_id]

    async def _broadcast(self):
        update = self.snapshot()
        for peer_id, channel in list(self.channels.items()):
            await self._send(peer_id, channel, update)

        for listener in list(self._listeners):
            listener(self.state)

    def _schedule_next(self):
        state = self.state

        if state.phase == PHASE_DEALING:
            self.scheduler.cancel(TIMER_TURN)
            self.scheduler.schedule(TIMER_DEAL, state.version, self.rules.deal_delay, self._fire(TIMER_DEAL))
            return

        current = state.current_player
        if state.phase in (PHASE_BIDDING, PHASE_PLAYING) and current and current.bot_controlled:
            self.scheduler.schedule(TIMER_TURN, state.version, self.rules.bot_think_delay, self._fire(TIMER_TURN))
        else:
            self.scheduler.cancel(TIMER_TURN)

    def _fire(self, purpose: str):
        async def callback(version: int):
            await self._enqueue(TimerFired(purpose, version))
        return callback
