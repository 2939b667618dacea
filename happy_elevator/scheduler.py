"""Turn scheduler: drives the conversation once it is autonomous.

Phases:

    idle ──arm──▶ armed ──fire──▶ fetching ──settle──▶ idle
                    │
                    └──cancel──▶ idle

The session calls `notify()` after every change to the log. Armed timers
are cancelled and re-armed from the new inputs; an in-flight fetch is never
aborted and its result is handed to the session when it resolves (the
log's duplicate check absorbs stale repeats). Only one timer or fetch exists
at any moment.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from statemachine import State, StateMachine

from happy_elevator.models import GameState, PersonaId, Turn
from happy_elevator.responder import PersonaResponder

logger = logging.getLogger(__name__)


class SchedulerPhases(StateMachine):
    """Guards the scheduler's transitions; holds no data of its own."""

    idle = State("idle", value="idle", initial=True)
    armed = State("armed", value="armed")
    fetching = State("fetching", value="fetching")

    arm = idle.to(armed)
    cancel = armed.to(idle)
    fire = armed.to(fetching)
    settle = fetching.to(idle)


def next_speaker(last: Turn) -> PersonaId:
    return "elevator" if last.persona == "marvin" else "marvin"


class TurnScheduler:
    """Schedules delayed persona turns while the conversation is autonomous.

    Args:
        responder:  Produces the next turn; treated as total.
        on_turn:    Appends a turn to the session; returns True if appended.
        base_delay: Seconds to wait before the first request.
        step_delay: Extra seconds per turn already in the log.
    """

    def __init__(
        self,
        responder: PersonaResponder,
        on_turn: Callable[[Turn], bool],
        *,
        base_delay: float = 1.0,
        step_delay: float = 0.5,
    ) -> None:
        self._responder = responder
        self._on_turn = on_turn
        self._base_delay = base_delay
        self._step_delay = step_delay
        self._phases = SchedulerPhases()
        self._task: asyncio.Task | None = None
        self._latest: tuple[GameState, tuple[Turn, ...]] | None = None
        self._changed_while_fetching = False
        self._closed = False

    @property
    def phase(self) -> str:
        return str(self._phases.current_state_value)

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def delay_for(self, turn_count: int) -> float:
        return self._base_delay + turn_count * self._step_delay

    def notify(self, state: GameState, turns: Sequence[Turn]) -> None:
        """React to a new snapshot of the log. Ignored once closed."""
        if self._closed:
            return
        self._latest = (state, tuple(turns))

        if self._phases.armed.is_active:
            self._cancel_timer()

        if self._phases.fetching.is_active:
            self._changed_while_fetching = True
            return

        self._evaluate()

    def _evaluate(self) -> None:
        if self._closed or self._latest is None:
            return
        state, turns = self._latest
        if state.conversation_mode != "autonomous" or not turns:
            return

        speaker = next_speaker(turns[-1])
        delay = self.delay_for(len(turns))
        self._phases.arm()
        self._task = asyncio.create_task(
            self._run(speaker, state.current_floor, turns, delay)
        )
        logger.debug("armed speaker=%s delay=%.2fs turns=%d", speaker, delay, len(turns))

    def _cancel_timer(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self._phases.cancel()
        logger.debug("timer cancelled")

    async def _run(
        self, speaker: PersonaId, floor: int, turns: tuple[Turn, ...], delay: float
    ) -> None:
        await asyncio.sleep(delay)

        self._phases.fire()
        self._changed_while_fetching = False
        try:
            turn = await self._responder.respond(speaker, floor, turns)
        finally:
            self._task = None
            self._phases.settle()

        appended = self._on_turn(turn)
        if not appended and self._changed_while_fetching:
            self._changed_while_fetching = False
            self._evaluate()

    async def aclose(self) -> None:
        """Cancel any pending timer or in-flight fetch and stop scheduling."""
        self._closed = True
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        if self._phases.armed.is_active:
            self._phases.cancel()
