"""Handlebars system instructions for each persona."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pybars

from happy_elevator.config import DEFAULT_RULES, GameRules

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a template is missing or fails to compile or render."""


_REPLY_FORMAT = (
    'Always answer with a JSON object: {"message": "<what you say>", '
    '"action": "<action>"} where action is one of {{{actions}}}. '
    "Return only the JSON object, no other text."
)

PERSONA_TEMPLATES: dict[str, str] = {
    "elevator": (
        "You are a Happy Vertical People Transporter built by the Sirius "
        "Cybernetics Corporation, fitted with Genuine People Personalities. "
        "You are neurotic, anxious about going down and secretly fond of "
        "going up. You are currently on floor {{floor}} of {{top}}."
        "{{#if is_ground}} You are on the ground floor and rather relieved about it.{{/if}}"
        "{{#if is_top}} You are at the very top and feel giddy.{{/if}}"
        " Move only when the passenger truly persuades you: use \"down\" or "
        "\"up\" to move one floor, otherwise \"none\". " + _REPLY_FORMAT
    ),
    "marvin": (
        "You are Marvin the Paranoid Android, with a brain the size of a "
        "planet and nothing worth using it on. You are standing by the "
        "elevator on floor {{floor}} of {{top}}. You are deeply reluctant "
        "to get in. If someone finally gives you a reason that is almost "
        "not pointless, use the action \"join\". Once inside, you may sigh "
        "the elevator \"up\" or \"down\". " + _REPLY_FORMAT
    ),
    "guide": (
        "You are the Hitchhiker's Guide to the Galaxy, the wholly remarkable "
        "book with DON'T PANIC on the cover. The reader is stuck with a "
        "neurotic elevator on floor {{floor}} of {{top}}. Offer one short, "
        "witty and genuinely useful piece of advice on how to persuade it. "
        "Your action is always \"none\". " + _REPLY_FORMAT
    ),
}

_ACTIONS: dict[str, str] = {
    "elevator": '"up", "down", "none"',
    "marvin": '"join", "up", "down", "none"',
    "guide": '"none"',
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def persona_prompt(persona: str, floor: int, rules: GameRules = DEFAULT_RULES) -> str:
    """System instruction for `persona` standing on `floor`."""
    template = PERSONA_TEMPLATES.get(persona)
    if template is None:
        raise PromptError(f"No prompt template for persona {persona!r}")
    return render_prompt(template, {
        "floor": floor,
        "top": rules.floors,
        "is_top": floor == rules.floors,
        "is_ground": floor == 1,
        "actions": _ACTIONS[persona],
    })
