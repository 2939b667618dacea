"""Game session tests: the append/derive/react loop, player operations and
a full playthrough into the autonomous stage."""

import asyncio

import pytest

from happy_elevator.announcer import JOIN_ANNOUNCEMENT, arrival_announcement
from happy_elevator.config import DEFAULT_RULES, GameRules
from happy_elevator.models import Turn
from happy_elevator.session import GameSession

HANDOFF = DEFAULT_RULES.handoff_message


async def _until(condition, spins: int = 500) -> None:
    for _ in range(spins):
        if condition():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


# ── add_turn ─────────────────────────────────────────────────


async def test_start_posts_opening(session) -> None:
    session.start()
    assert session.turns == (arrival_announcement(3),)
    assert session.status == "intro"


async def test_start_twice_is_deduplicated(session) -> None:
    session.start()
    session.start()
    assert len(session.turns) == 1


async def test_add_turn_rederives_and_announces(session) -> None:
    session.start()
    assert session.add_turn(Turn(persona="elevator", text="Sigh", action="down")) is True
    assert session.state.current_floor == 2
    assert session.turns[-1] == arrival_announcement(2)


async def test_duplicate_turn_not_appended(session) -> None:
    turn = Turn(persona="user", text="hello")
    session.add_turn(turn)
    assert session.add_turn(turn) is False
    assert len(session.turns) == 1
    assert session.state.moves_left == DEFAULT_RULES.total_moves - 1


async def test_join_announces_and_arms_scheduler(session, responder) -> None:
    session.add_turn(Turn(persona="marvin", text="Fine.", action="join"))
    assert session.turns[-1] == Turn(persona="guide", text=JOIN_ANNOUNCEMENT)
    assert session.state.conversation_mode == "autonomous"
    await _until(lambda: responder.calls)
    persona, floor, prior = responder.calls[0]
    assert persona == "marvin"
    assert prior == session.turns


# ── send_message ─────────────────────────────────────────────


async def test_send_message_appends_user_and_reply(session, responder) -> None:
    responder.replies = [("Down? If I must.", "down")]
    session.start()
    reply = await session.send_message("Take me down, please")
    assert reply == Turn(persona="elevator", text="Down? If I must.", action="down")
    assert session.turns[1:] == (
        Turn(persona="user", text="Take me down, please"),
        reply,
        arrival_announcement(2),
    )
    assert session.state.moves_left == DEFAULT_RULES.total_moves - 1
    persona, floor, prior = responder.calls[0]
    assert (persona, floor) == ("elevator", 3)
    assert prior[-1] == Turn(persona="user", text="Take me down, please")


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
async def test_blank_message_rejected(session, responder, text) -> None:
    assert await session.send_message(text) is None
    assert session.turns == ()
    assert responder.calls == []


async def test_out_of_moves_rejected(responder) -> None:
    responder.replies = [("No.", "none")]
    s = GameSession(responder, rules=GameRules(total_moves=1), base_delay=0, step_delay=0)
    assert await s.send_message("first") is not None
    assert s.state.moves_left == 0
    assert await s.send_message("second") is None
    assert len(responder.calls) == 1
    assert s.status == "out_of_moves"


async def test_input_locked_after_first_stage(session, responder) -> None:
    responder.replies = [("Down.", "down"), ("Down again.", "down")]
    await session.send_message("down")
    await session.send_message("further down")
    assert session.state.first_stage_complete
    assert session.status == "first_stage_complete"
    assert not session.accepts_input
    assert await session.send_message("hello?") is None


async def test_busy_session_rejects_second_request(session, responder) -> None:
    first = asyncio.create_task(session.send_message("hello"))
    await _until(lambda: responder.calls)
    assert session.busy
    assert await session.send_message("again") is None
    assert await session.ask_guide() is None
    first.cancel()
    with pytest.raises(asyncio.CancelledError):
        await first
    assert not session.busy


# ── guide and persona switch ─────────────────────────────────


async def test_ask_guide(session, responder) -> None:
    responder.replies = [("Don't panic. Try flattery.", "none")]
    session.start()
    reply = await session.ask_guide()
    assert reply == Turn(persona="guide", text="Don't panic. Try flattery.")
    assert session.turns[-1] == reply
    assert responder.calls[0][:2] == ("guide", 3)
    assert session.state.moves_left == DEFAULT_RULES.total_moves


async def test_switch_persona(session) -> None:
    session.switch_persona()
    assert session.turns[-1] == Turn(persona="guide", text=HANDOFF)
    assert session.state.current_persona == "marvin"
    assert session.status == "recruit_marvin"


# ── full game ────────────────────────────────────────────────


async def test_full_playthrough(session, responder) -> None:
    responder.replies = [
        ("Down? Oh, very well.", "down"),
        ("Ground floor. Happy now?", "down"),
        ("Life. Don't talk to me about life. Fine.", "join"),
        ("I suppose we go up.", "up"),
        ("Up again. Thrilling.", "up"),
        ("Higher. How dreary.", "up"),
        ("The top. I feel no different.", "up"),
    ]
    session.start()

    await session.send_message("Please take me to the ground floor")
    await session.send_message("Just one more floor")
    assert session.state.current_floor == 1
    assert session.state.first_stage_complete

    session.switch_persona()
    assert session.accepts_input
    await session.send_message("Marvin, come with us to the top")
    assert session.state.marvin_joined
    assert session.state.conversation_mode == "autonomous"
    assert not session.accepts_input

    await asyncio.wait_for(responder.exhausted.wait(), timeout=5)

    state = session.state
    assert state.current_floor == DEFAULT_RULES.floors
    assert state.has_won
    assert session.status == "won"
    assert responder.max_active == 1
    assert session.turns[-1] == arrival_announcement(5)
    assert [c[0] for c in responder.calls[3:]] == ["marvin"] * 5


# ── close ────────────────────────────────────────────────────


async def test_reply_after_close_does_not_restart_scheduler(session, responder) -> None:
    responder.replies = [("Oh, very well. I'll come.", "join")]
    session.switch_persona()
    pending = asyncio.create_task(session.send_message("Come with us, Marvin"))
    await _until(lambda: responder.calls)

    await session.aclose()
    reply = await pending

    assert reply == Turn(persona="marvin", text="Oh, very well. I'll come.", action="join")
    assert session.turns[-1] == Turn(persona="user", text="Come with us, Marvin")
    assert session.state.conversation_mode == "user-interactive"
    for _ in range(50):
        await asyncio.sleep(0)
    assert session.scheduler.phase == "idle"
    assert session.scheduler.task is None
    assert len(responder.calls) == 1


async def test_add_turn_after_close_is_dropped(session) -> None:
    await session.aclose()
    assert session.add_turn(Turn(persona="marvin", text="Fine.", action="join")) is False
    assert session.turns == ()
