# engine_py/src/landlord_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ChannelClosedError(Exception):
    """Raised when sending on a channel whose peer has gone away."""


# Specific error codes
ROOM_FULL = "ROOM_FULL"
ALREADY_SEATED = "ALREADY_SEATED"
NOT_SEATED = "NOT_SEATED"
NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
WRONG_PHASE = "WRONG_PHASE"
NOT_YOUR_TURN = "NOT_YOUR_TURN"
OWNERSHIP_MISMATCH = "OWNERSHIP_MISMATCH"
ILLEGAL_PLAY = "ILLEGAL_PLAY"
CANNOT_PASS = "CANNOT_PASS"
INVALID_BID = "INVALID_BID"
ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
INVALID_DEAL = "INVALID_DEAL"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
