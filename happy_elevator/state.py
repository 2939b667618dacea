"""Game state derivation.

`derive()` is a left fold over the conversation log:

  1. A guide turn whose text is the hand-off sentinel switches the active
     persona to Marvin for the rest of the fold.
  2. The turn's action token is applied:
       join  → autonomous mode, Marvin is the last speaker and has joined
       up    → one floor up (clamped); winning requires Marvin on board
       down  → one floor down (clamped); reaching floor 1 ends stage one
       none  → nothing
  3. Moves left is computed once at the end from the number of user turns.

The fold reads nothing but its arguments, so results are cached by log
content: two logs with equal turns always produce equal states.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache

from happy_elevator.config import DEFAULT_RULES, GameRules
from happy_elevator.models import GameState, GameStatus, Turn


def initial_state(rules: GameRules = DEFAULT_RULES) -> GameState:
    return GameState(current_floor=rules.initial_floor, moves_left=rules.total_moves)


def derive(turns: Sequence[Turn], rules: GameRules = DEFAULT_RULES) -> GameState:
    """Return the GameState for the given log."""
    return _fold(tuple(turns), rules)


@lru_cache(maxsize=256)
def _fold(turns: tuple[Turn, ...], rules: GameRules) -> GameState:
    state = initial_state(rules)

    for turn in turns:
        changes: dict = {}

        if turn.persona == "guide" and turn.text == rules.handoff_message:
            changes["current_persona"] = "marvin"

        if turn.action == "join":
            changes.update(
                conversation_mode="autonomous",
                last_speaker="marvin",
                marvin_joined=True,
            )
        elif turn.action == "up":
            floor = min(rules.floors, state.current_floor + 1)
            changes.update(
                current_floor=floor,
                has_won=state.marvin_joined and floor == rules.floors,
            )
        elif turn.action == "down":
            floor = max(1, state.current_floor - 1)
            changes.update(
                current_floor=floor,
                first_stage_complete=state.first_stage_complete or floor == 1,
            )

        if changes:
            state = state.model_copy(update=changes)

    user_turns = sum(1 for t in turns if t.persona == "user")
    return state.model_copy(update={"moves_left": rules.total_moves - user_turns})


def game_status(state: GameState, turns: Sequence[Turn]) -> GameStatus:
    """Classify the current phase of play, in precedence order."""
    if state.has_won:
        return "won"
    if state.moves_left <= 0:
        return "out_of_moves"
    if state.conversation_mode == "autonomous":
        return "autonomous"
    if state.current_persona == "marvin" and not state.marvin_joined:
        return "recruit_marvin"
    if state.current_persona == "elevator" and state.first_stage_complete:
        return "first_stage_complete"
    if len(turns) <= 1:
        return "intro"
    return "in_progress"
