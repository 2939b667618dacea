"""Core domain models.

A conversation is an append-only sequence of `Turn`s; everything else about
the game is a `GameState` derived from that sequence. Both are frozen
pydantic models so equality is structural and instances are hashable.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

PersonaId = Literal["user", "elevator", "guide", "marvin"]

ActionToken = Literal["none", "up", "down", "join"]

ConversationMode = Literal["user-interactive", "autonomous"]

GameStatus = Literal[
    "won",
    "out_of_moves",
    "autonomous",
    "recruit_marvin",
    "first_stage_complete",
    "intro",
    "in_progress",
]


class Turn(BaseModel):
    """A single entry in the conversation log."""

    model_config = ConfigDict(frozen=True)

    persona: PersonaId
    text: str
    action: ActionToken = "none"


class GameState(BaseModel):
    """Snapshot derived from the full conversation log."""

    model_config = ConfigDict(frozen=True)

    current_floor: int
    moves_left: int
    current_persona: PersonaId = "elevator"
    first_stage_complete: bool = False
    has_won: bool = False
    conversation_mode: ConversationMode = "user-interactive"
    last_speaker: PersonaId | None = None
    marvin_joined: bool = False
