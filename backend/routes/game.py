"""Game session endpoints: read state, talk, ask the guide, switch persona, reset."""

from fastapi import APIRouter, HTTPException, Request

from happy_elevator.session import GameSession

from .models import GameView, MessageBody

router = APIRouter()


def _session(request: Request) -> GameSession:
    return request.app.state.session


def _view(session: GameSession) -> GameView:
    return GameView(
        state=session.state,
        status=session.status,
        turns=list(session.turns),
        busy=session.busy,
        accepts_input=session.accepts_input,
    )


@router.get("/game")
async def get_game(request: Request) -> GameView:
    """Current state, status and full conversation."""
    return _view(_session(request))


@router.post("/game/messages")
async def send_message(request: Request, body: MessageBody) -> GameView:
    """Post a player line and the active persona's reply."""
    session = _session(request)
    reply = await session.send_message(body.text)
    if reply is None:
        raise HTTPException(409, "Message not accepted")
    return _view(session)


@router.post("/game/guide")
async def ask_guide(request: Request) -> GameView:
    """Ask the guide for advice on the current floor."""
    session = _session(request)
    if await session.ask_guide() is None:
        raise HTTPException(409, "The guide is busy")
    return _view(session)


@router.post("/game/switch")
async def switch_persona(request: Request) -> GameView:
    """Hand the conversation over to Marvin."""
    session = _session(request)
    session.switch_persona()
    return _view(session)


@router.post("/game/reset")
async def reset_game(request: Request) -> GameView:
    """Discard the current session and start a new one."""
    app = request.app
    await app.state.session.aclose()
    app.state.session = GameSession.from_settings(app.state.settings, app.state.llm)
    return _view(app.state.session)
