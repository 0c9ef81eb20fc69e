"""Game constants and utilities"""

# Phases
PHASE_LOBBY = "LOBBY"
PHASE_DEALING = "DEALING"
PHASE_BIDDING = "BIDDING"
PHASE_PLAYING = "PLAYING"
PHASE_GAME_OVER = "GAMEOVER"

# Roles
ROLE_LANDLORD = "LANDLORD"
ROLE_PEASANT = "PEASANT"

# Table shape
SEAT_COUNT = 3
HAND_SIZE = 17
KITTY_SIZE = 3
DECK_SIZE = 54

# Values
SMALL_JOKER_VALUE = 16
BIG_JOKER_VALUE = 17
# Laizi is drawn from 3..2
WILDCARD_MIN_VALUE = 3
WILDCARD_MAX_VALUE = 15

# Bidding
MAX_BID = 3
BID_AMOUNTS = [0, 1, 2, 3]

# Scoring
INITIAL_BEANS = 10000
STAKE_UNIT = 100

# Pacing (seconds)
DEFAULT_DEAL_DELAY = 2.0
DEFAULT_BOT_THINK_DELAY = 1.5
DEFAULT_ADVICE_TIMEOUT = 10.0

# Room addressing
ROOM_ADDRESS_PREFIX = "ddz-"
ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

BOT_ID_PREFIX = "BOT-"
HOST_NAME_SUFFIX = " (Host)"

# Last action labels
ACTION_LABEL_PASS = "Pass"
ACTION_LABEL_PLAY = "Play"
ACTION_LABEL_NO_BID = "No bid"
