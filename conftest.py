import asyncio

import pytest

from happy_elevator.models import Turn
from happy_elevator.session import GameSession


class ScriptedResponder:
    """Responder stub that replies from a script of (text, action) pairs.

    Once the script runs out the next call parks until cancelled, so an
    autonomous loop stops at a known point. Tracks how many calls overlap.
    """

    def __init__(self, replies: list[tuple[str, str]] | None = None) -> None:
        self.replies = list(replies or [])
        self.calls: list[tuple[str, int, tuple[Turn, ...]]] = []
        self.active = 0
        self.max_active = 0
        self.exhausted = asyncio.Event()

    async def respond(self, persona, floor, prior_turns=()) -> Turn:
        self.calls.append((persona, floor, tuple(prior_turns)))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if not self.replies:
                self.exhausted.set()
                await asyncio.Event().wait()
            await asyncio.sleep(0)
            text, action = self.replies.pop(0)
            return Turn(persona=persona, text=text, action=action)
        finally:
            self.active -= 1


@pytest.fixture
def responder() -> ScriptedResponder:
    return ScriptedResponder()


@pytest.fixture
async def session(responder: ScriptedResponder):
    """Session with zero scheduling delay; pending work is cancelled afterwards."""
    s = GameSession(responder, base_delay=0, step_delay=0)
    yield s
    await s.aclose()
