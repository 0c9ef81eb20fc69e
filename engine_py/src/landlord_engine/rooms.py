"""
Human-shareable room codes and the channel addresses they map to.
"""

import random
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

from .constants import ROOM_ADDRESS_PREFIX, ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH


def generate_room_code(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.SystemRandom()
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def room_address(code: str) -> str:
    """Fixed transform from a room code to the host's channel address."""
    return f"{ROOM_ADDRESS_PREFIX}{code.strip().upper()}"


def room_code_from_address(address: str) -> Optional[str]:
    if not address.startswith(ROOM_ADDRESS_PREFIX):
        return None
    return parse_room_code(address[len(ROOM_ADDRESS_PREFIX):])


def parse_room_code(text: str) -> Optional[str]:
    """
    Normalize user input to a room code.

    Accepts a bare code in any case, or a share URL carrying `?room=CODE`.
    Returns None if nothing valid is found.
    """
    if not text:
        return None

    text = text.strip()
    if "://" in text:
        values = parse_qs(urlparse(text).query).get("room")
        if not values:
            return None
        text = values[0]

    code = text.upper()
    if len(code) != ROOM_CODE_LENGTH:
        return None
    if any(ch not in ROOM_CODE_ALPHABET for ch in code):
        return None
    return code


def room_url(base_url: str, code: str) -> str:
    """Share link for a room."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'room': code.upper()})}"
