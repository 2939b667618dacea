from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.routes import router
from happy_elevator.config import Settings, load_settings
from happy_elevator.llm import LLM, build_llm
from happy_elevator.session import GameSession


def create_app(settings: Settings | None = None, llm: LLM | None = None) -> FastAPI:
    resolved = settings or load_settings()
    client = llm or build_llm(resolved)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.session = GameSession.from_settings(resolved, client)
        yield
        await app.state.session.aclose()

    app = FastAPI(title="Happy Vertical People Transporter", lifespan=lifespan)
    app.state.settings = resolved
    app.state.llm = client
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (reads settings from the environment)
app = create_app()
