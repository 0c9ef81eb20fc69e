"""
Play advice from Gemini.

Advice is informational only: nothing here reads or writes host state, and
every failure turns into a placeholder string.
"""

import asyncio
import logging
import os
from typing import Optional, Sequence

import requests

from .constants import DEFAULT_ADVICE_TIMEOUT, ROLE_LANDLORD
from .models import Card, GameState
from .rules import RuleConfig, rules_from_env

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.5-flash"

PLACEHOLDER_NO_KEY = "Configure a Gemini API key to get advice."
PLACEHOLDER_UNAVAILABLE = "Advice is unavailable right now."
PLACEHOLDER_EMPTY = "The advisor is still thinking..."


def _cards_text(cards: Sequence[Card]) -> str:
    return ", ".join(str(c) for c in cards)


def build_prompt(hand: Sequence[Card], state: GameState, player_id: str) -> str:
    me = state.get_player(player_id)
    role = "landlord" if me and me.role == ROLE_LANDLORD else "peasant"

    if state.is_leading(player_id):
        table = "It is my lead; I may play anything."
    else:
        table = f"The previous player played: [{_cards_text(state.last_played_cards)}]."

    lines = [
        "I am playing Dou Dizhu (Landlord).",
        f"My hand: [{_cards_text(hand)}]",
        f"My role: {role}",
        f"Base bid: {state.base_bid}",
        f"Multiplier: {state.multiplier}",
    ]
    if state.laizi_rank is not None:
        lines.append(f"Wildcard rank value: {state.laizi_rank}")
    lines += [
        table,
        "Give me one short sentence of advice. If following, say what to play, "
        "or say \"pass\" if I should not play. Do not explain the rules.",
    ]
    return "\n".join(lines)


class GeminiAdvisor:
    """Calls the generateContent REST endpoint with `requests`."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_ADVICE_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, prompt: str) -> str:
        response = self.session.post(
            GEMINI_ENDPOINT.format(model=self.model),
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        return data["candidates"][0]["content"]["parts"][0]["text"]

    async def advise(self, hand: Sequence[Card], state: GameState, player_id: str) -> str:
        if not self.api_key:
            return PLACEHOLDER_NO_KEY

        prompt = build_prompt(hand, state, player_id)
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._request, prompt),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Gemini advice timed out after {self.timeout}s")
            return PLACEHOLDER_UNAVAILABLE
        except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Gemini advice failed: {e}")
            return PLACEHOLDER_UNAVAILABLE

        return (text or "").strip() or PLACEHOLDER_EMPTY


def advisor_from_env(rules: Optional[RuleConfig] = None) -> GeminiAdvisor:
    """
    Advisor configured from GEMINI_API_KEY (or API_KEY) and GEMINI_MODEL.

    The request timeout is the room's `advice_timeout`; without rules it
    comes from the LANDLORD_* environment.
    """
    rules = rules or rules_from_env()
    return GeminiAdvisor(
        api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
        timeout=rules.advice_timeout,
    )


async def advise(
    hand: Sequence[Card],
    state: GameState,
    player_id: str,
    advisor: Optional[GeminiAdvisor] = None
) -> str:
    """Advice text for `player_id`; falls back to a placeholder on any failure."""
    advisor = advisor or advisor_from_env()
    return await advisor.advise(hand, state, player_id)
