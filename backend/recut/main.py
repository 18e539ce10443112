"""
Recut backend service: render control over HTTP.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .config import RecutSettings, load_settings
from .execution.base import EngineBoundary
from .execution.errors import EngineLoadFailedError
from .execution.ffmpeg import FFmpegEngine
from .execution.runner import JobRunner
from .execution.session import EngineSession
from .persistence.preferences import PreferenceStore
from .routes import render_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[RecutSettings] = None,
    engine: Optional[EngineBoundary] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Runtime settings (defaults to environment)
        engine: Engine boundary (defaults to local FFmpeg)
    """
    settings = settings or load_settings()
    engine = engine or FFmpegEngine(
        ffmpeg_path=settings.ffmpeg_path,
        workspace_root=settings.workspace_root,
    )
    session = EngineSession(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Engine load is triggered once; a fault leaves the app up for manual reload
        try:
            await session.load()
        except EngineLoadFailedError as e:
            logger.error(f"[App] {e}")
        yield
        if isinstance(engine, FFmpegEngine):
            engine.close()

    app = FastAPI(title="Recut Backend", version=__version__, lifespan=lifespan)

    app.state.settings = settings
    app.state.session = session
    app.state.runner = JobRunner(session)
    app.state.preference_store = PreferenceStore(db_path=settings.db_path)

    app.include_router(render_router)

    @app.get("/")
    async def root():
        return {"service": "recut-backend", "status": "running"}

    return app


app = create_app()
