"""Persona responder: asks the generator for a persona's next turn.

`respond()` is total: whatever goes wrong (bad floor, missing prompt,
transport failure, unexpected response) the caller gets back a well-formed
fallback turn. Only task cancellation propagates.

Generated content is parsed with `parse_reply()`, which returns a tagged
result instead of raising. A failed parse is not an error for the game: the
raw content becomes the turn's text and the action defaults to "none".
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, ValidationError

from happy_elevator.config import DEFAULT_RULES, GameRules
from happy_elevator.llm import LLM
from happy_elevator.models import ActionToken, PersonaId, Turn
from happy_elevator.prompts import persona_prompt

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------

class GeneratedReply(BaseModel):
    """Shape the generator is asked to answer with."""

    message: str
    action: ActionToken | None = None


@dataclass(frozen=True, slots=True)
class ParsedReply:
    ok: bool
    message: str
    action: ActionToken = "none"
    error: str | None = None


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned


def parse_reply(content: str) -> ParsedReply:
    """Parse generated content as a bare JSON string or a {message, action} object."""
    try:
        data = json.loads(_strip_fences(content))
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning("Generated reply is not valid JSON: %s", e)
        return ParsedReply(ok=False, message=content, error=str(e))

    if isinstance(data, str):
        return ParsedReply(ok=True, message=data)

    try:
        reply = GeneratedReply.model_validate(data)
    except ValidationError as e:
        logger.warning("Generated reply has an unexpected shape: %r", content)
        return ParsedReply(ok=False, message=content, error=str(e))

    return ParsedReply(ok=True, message=reply.message, action=reply.action or "none")


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------

def build_messages(
    persona: PersonaId,
    floor: int,
    prior_turns: Sequence[Turn],
    rules: GameRules = DEFAULT_RULES,
) -> list[dict]:
    """System instruction followed by one chat entry per prior turn."""
    messages: list[dict] = [
        {"role": "system", "content": persona_prompt(persona, floor, rules)},
    ]
    for turn in prior_turns:
        entry = {
            "role": "user" if turn.persona == "user" else "assistant",
            "content": json.dumps(
                {"message": turn.text, "action": turn.action}, ensure_ascii=False
            ),
        }
        if turn.persona != "user":
            entry["name"] = turn.persona
        messages.append(entry)
    return messages


# ---------------------------------------------------------------------------
# PersonaResponder
# ---------------------------------------------------------------------------

class PersonaResponder:
    def __init__(self, llm: LLM, rules: GameRules = DEFAULT_RULES) -> None:
        self._llm = llm
        self._rules = rules

    def fallback(self, persona: PersonaId) -> Turn:
        return Turn(persona=persona, text=self._rules.fallback_message, action="none")

    async def respond(
        self, persona: PersonaId, floor: int, prior_turns: Sequence[Turn] = ()
    ) -> Turn:
        """Return `persona`'s next turn. Never raises."""
        try:
            if not self._rules.valid_floor(floor):
                raise ValueError(f"Invalid floor number: {floor}")

            messages = build_messages(persona, floor, prior_turns, self._rules)
            content = await self._llm(persona, messages)
            reply = parse_reply(content)
            if not reply.ok:
                logger.info("Using raw reply text for persona=%s", persona)
            return Turn(persona=persona, text=reply.message, action=reply.action)
        except Exception:
            logger.exception("Persona %s failed to respond; using fallback", persona)
            return self.fallback(persona)
