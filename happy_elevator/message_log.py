"""Append-only conversation log.

The log is the single source of truth for a session; game state is always
re-derived from it. Appending a turn equal to the current last entry is a
no-op, which stops reactive loops from re-adding the same turn.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from happy_elevator.models import Turn

logger = logging.getLogger(__name__)


class MessageLog:
    def __init__(self, turns: Iterable[Turn] = ()) -> None:
        self._turns: list[Turn] = []
        for turn in turns:
            self.append(turn)

    def append(self, turn: Turn) -> bool:
        """Append `turn` unless it equals the last entry. Returns True if appended."""
        if self._turns and self._turns[-1] == turn:
            logger.debug("duplicate turn skipped persona=%s", turn.persona)
            return False
        self._turns.append(turn)
        return True

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def last(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))
