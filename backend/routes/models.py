"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel

from happy_elevator.models import GameState, GameStatus, Turn


class MessageBody(BaseModel):
    text: str


class GameView(BaseModel):
    state: GameState
    status: GameStatus
    turns: list[Turn]
    busy: bool
    accepts_input: bool
