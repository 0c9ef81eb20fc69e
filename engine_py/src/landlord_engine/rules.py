"""
Room rule configuration and validation.
"""

import os

from pydantic import BaseModel, Field

from .constants import (
    DEFAULT_ADVICE_TIMEOUT,
    DEFAULT_BOT_THINK_DELAY,
    DEFAULT_DEAL_DELAY,
    INITIAL_BEANS,
)
from .models import GameConfig


class RuleConfig(BaseModel):
    """Configuration for a room, fixed once the room is created."""

    enable_laizi: bool = Field(
        default=False,
        description="Draw a wildcard (Laizi) rank for each round"
    )
    is_dedicated: bool = Field(
        default=False,
        description="Host only relays and spectates; it does not take a seat"
    )
    deal_delay: float = Field(
        default=DEFAULT_DEAL_DELAY,
        ge=0,
        le=30,
        description="Seconds spent in the dealing phase before bidding opens"
    )
    bot_think_delay: float = Field(
        default=DEFAULT_BOT_THINK_DELAY,
        ge=0,
        le=30,
        description="Seconds a bot waits after its turn starts before acting"
    )
    bot_takeover_on_disconnect: bool = Field(
        default=True,
        description="Let the bot policy drive a seat whose player dropped mid-game"
    )
    double_on_bomb: bool = Field(
        default=True,
        description="Double the stake multiplier whenever a bomb or rocket is played"
    )
    initial_beans: int = Field(
        default=INITIAL_BEANS,
        ge=0,
        description="Bean balance given to each newly seated player"
    )
    advice_timeout: float = Field(
        default=DEFAULT_ADVICE_TIMEOUT,
        gt=0,
        le=120,
        description="Seconds to wait for the advisory service"
    )

    def game_config(self) -> GameConfig:
        """The slice of the rules that is replicated inside GameState."""
        return GameConfig(enable_laizi=self.enable_laizi, is_dedicated=self.is_dedicated)


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def rules_from_env() -> RuleConfig:
    """Build rules from LANDLORD_* environment variables."""
    overrides = {
        "enable_laizi": _env_flag("LANDLORD_ENABLE_LAIZI", default_rules.enable_laizi),
        "is_dedicated": _env_flag("LANDLORD_DEDICATED", default_rules.is_dedicated),
        "bot_takeover_on_disconnect": _env_flag(
            "LANDLORD_BOT_TAKEOVER", default_rules.bot_takeover_on_disconnect
        ),
    }
    if os.getenv("LANDLORD_DEAL_DELAY"):
        overrides["deal_delay"] = float(os.environ["LANDLORD_DEAL_DELAY"])
    if os.getenv("LANDLORD_BOT_DELAY"):
        overrides["bot_think_delay"] = float(os.environ["LANDLORD_BOT_DELAY"])
    if os.getenv("LANDLORD_ADVICE_TIMEOUT"):
        overrides["advice_timeout"] = float(os.environ["LANDLORD_ADVICE_TIMEOUT"])
    return create_rules(**overrides)
