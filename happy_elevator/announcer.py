"""Guide announcements for state transitions.

The announcer compares the snapshot before and after a single append and
returns the guide turns that transition calls for. It only ever sees real
change events from the session, so each transition is announced once.
"""

from __future__ import annotations

from happy_elevator.models import GameState, Turn

JOIN_ANNOUNCEMENT = (
    "Marvin has joined the elevator. Now sit back and watch the fascinating "
    "interaction between these two Genuine People Personalities™..."
)


def arrival_announcement(floor: int) -> Turn:
    return Turn(persona="guide", text=f"Now arriving at floor {floor}...", action="none")


class GuideAnnouncer:
    def opening(self, state: GameState) -> Turn:
        """Announcement posted when a session starts."""
        return arrival_announcement(state.current_floor)

    def react(self, previous: GameState, current: GameState) -> list[Turn]:
        turns: list[Turn] = []
        if current.marvin_joined and not previous.marvin_joined:
            turns.append(Turn(persona="guide", text=JOIN_ANNOUNCEMENT, action="none"))
        if current.current_floor != previous.current_floor:
            turns.append(arrival_announcement(current.current_floor))
        return turns
