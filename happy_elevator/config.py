"""Game rules and runtime settings.

`GameRules` holds the constants the reducer folds against. `Settings` is
read from the environment and a repo-root `.env` file, and is only needed
by the launcher and the HTTP app.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, model_validator

ROOT = Path(__file__).parent.parent

HANDOFF_MESSAGE = (
    "Attention: Marvin the Paranoid Android is waiting on the ground floor. "
    "Convince him to join you, then ride together to the top floor."
)
FALLBACK_MESSAGE = "Apologies, I'm experiencing some difficulties."


class GameRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    floors: int = Field(default=5, ge=1)
    initial_floor: int = Field(default=3, ge=1)
    total_moves: int = Field(default=10, ge=0)
    handoff_message: str = HANDOFF_MESSAGE
    fallback_message: str = FALLBACK_MESSAGE

    @model_validator(mode="after")
    def _initial_floor_in_range(self) -> GameRules:
        if self.initial_floor > self.floors:
            raise ValueError(
                f"initial_floor {self.initial_floor} is above the top floor {self.floors}"
            )
        return self

    def valid_floor(self, floor: int) -> bool:
        return 1 <= floor <= self.floors


DEFAULT_RULES = GameRules()


class Settings(BaseModel):
    """Runtime configuration for the generator client, game and server."""

    provider_url: str = "https://text.pollinations.ai"
    provider_format: Literal["openai", "pollinations", "echo"] = "pollinations"
    api_key: str = ""
    model: str = "mistral"
    timeout: float = 120.0

    floors: int = 5
    initial_floor: int = 3
    total_moves: int = 10

    base_delay: float = 1.0
    step_delay: float = 0.5

    host: str = "0.0.0.0"
    port: int = 13015

    @model_validator(mode="after")
    def _initial_floor_in_range(self) -> Settings:
        if self.initial_floor > self.floors:
            raise ValueError(
                f"initial_floor {self.initial_floor} is above the top floor {self.floors}"
            )
        return self

    def rules(self) -> GameRules:
        return GameRules(
            floors=self.floors,
            initial_floor=self.initial_floor,
            total_moves=self.total_moves,
        )


_ENV_FIELDS: dict[str, str] = {
    "LLM_PROVIDER_URL": "provider_url",
    "LLM_PROVIDER_FORMAT": "provider_format",
    "LLM_API_KEY": "api_key",
    "LLM_MODEL": "model",
    "LLM_TIMEOUT": "timeout",
    "GAME_FLOORS": "floors",
    "GAME_INITIAL_FLOOR": "initial_floor",
    "GAME_TOTAL_MOVES": "total_moves",
    "TURN_BASE_DELAY": "base_delay",
    "TURN_STEP_DELAY": "step_delay",
    "HOST": "host",
    "PORT": "port",
}


def load_settings(env_file: Path | None = None) -> Settings:
    """Build Settings from environment variables and the `.env` file.

    Non-empty environment variables win over the file; blank values fall
    back to the defaults.
    """
    file_values = dotenv_values(env_file or ROOT / ".env")
    fields: dict[str, str] = {}
    for var, name in _ENV_FIELDS.items():
        value = os.environ.get(var) or file_values.get(var)
        if value:
            fields[name] = value
    return Settings.model_validate(fields)
