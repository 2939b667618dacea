"""Game session: the single writer for one conversation.

Every change goes through `add_turn()`:

  1. Append to the log (duplicates of the last entry are dropped).
  2. Re-derive the game state.
  3. Queue the guide's announcements for that transition and process them
     the same way, in order.
  4. Notify the scheduler once with the final snapshot.

Human input, guide advice and the persona switch are thin operations on
top of that loop.
"""

from __future__ import annotations

import logging

from happy_elevator.announcer import GuideAnnouncer
from happy_elevator.config import DEFAULT_RULES, GameRules, Settings
from happy_elevator.llm import LLM
from happy_elevator.message_log import MessageLog
from happy_elevator.models import GameState, GameStatus, Turn
from happy_elevator.responder import PersonaResponder
from happy_elevator.scheduler import TurnScheduler
from happy_elevator.state import derive, game_status

logger = logging.getLogger(__name__)


class GameSession:
    def __init__(
        self,
        responder: PersonaResponder,
        *,
        rules: GameRules = DEFAULT_RULES,
        base_delay: float = 1.0,
        step_delay: float = 0.5,
        announcer: GuideAnnouncer | None = None,
    ) -> None:
        self._responder = responder
        self._rules = rules
        self._announcer = announcer or GuideAnnouncer()
        self._log = MessageLog()
        self._state = derive(self._log.turns, rules)
        self._busy = False
        self._closed = False
        self.scheduler = TurnScheduler(
            responder, self.add_turn,
            base_delay=base_delay, step_delay=step_delay,
        )

    @classmethod
    def from_settings(cls, settings: Settings, llm: LLM) -> GameSession:
        """Build a started session wired to `llm`."""
        rules = settings.rules()
        session = cls(
            PersonaResponder(llm, rules),
            rules=rules,
            base_delay=settings.base_delay,
            step_delay=settings.step_delay,
        )
        session.start()
        return session

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def turns(self) -> tuple[Turn, ...]:
        return self._log.turns

    @property
    def status(self) -> GameStatus:
        return game_status(self._state, self._log.turns)

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def accepts_input(self) -> bool:
        s = self._state
        if s.moves_left <= 0 or s.conversation_mode == "autonomous":
            return False
        return not (s.current_persona == "elevator" and s.first_stage_complete)

    # ------------------------------------------------------------------
    # Log mutation
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Post the guide's arrival announcement for the starting floor."""
        self.add_turn(self._announcer.opening(self._state))

    def add_turn(self, turn: Turn) -> bool:
        """Append a turn and run the reactions. Returns True if it was appended."""
        if self._closed:
            logger.debug("session closed; dropping %s turn", turn.persona)
            return False
        pending = [turn]
        appended = False
        while pending:
            current = pending.pop(0)
            if not self._log.append(current):
                continue
            appended = True
            previous, self._state = self._state, derive(self._log.turns, self._rules)
            pending.extend(self._announcer.react(previous, self._state))

        if appended:
            self.scheduler.notify(self._state, self._log.turns)
        return appended

    # ------------------------------------------------------------------
    # Player operations
    # ------------------------------------------------------------------

    async def send_message(self, text: str) -> Turn | None:
        """Post the player's line and the active persona's reply.

        Returns the reply, or None when the input was rejected.
        """
        if not text.strip() or self._busy or not self.accepts_input:
            logger.debug("player input rejected")
            return None

        self._busy = True
        try:
            self.add_turn(Turn(persona="user", text=text, action="none"))
            reply = await self._responder.respond(
                self._state.current_persona, self._state.current_floor, self._log.turns
            )
            self.add_turn(reply)
            return reply
        finally:
            self._busy = False

    async def ask_guide(self) -> Turn | None:
        """Ask the guide for advice about the current floor."""
        if self._busy:
            return None

        self._busy = True
        try:
            reply = await self._responder.respond(
                "guide", self._state.current_floor, self._log.turns
            )
            self.add_turn(reply)
            return reply
        finally:
            self._busy = False

    def switch_persona(self) -> None:
        """Hand the conversation over to Marvin."""
        self.add_turn(Turn(persona="guide", text=self._rules.handoff_message, action="none"))

    async def aclose(self) -> None:
        self._closed = True
        await self.scheduler.aclose()
