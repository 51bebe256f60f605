# vlog_portal/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from vlog_portal.api.v1.endpoints import auth, health, realtime, submissions, users
from vlog_portal.core.config import settings
from vlog_portal.core.logging_config import setup_logging
from vlog_portal.db.init_db import init_db
from vlog_portal.db.session import SessionLocal, engine
from vlog_portal.services.submission_repository import SubmissionRepository

logger = logging.getLogger(__name__)


def create_app(
    session_factory: sessionmaker = SessionLocal,
    bind: Optional[Engine] = None,
) -> FastAPI:
    setup_logging()
    bind = bind if bind is not None else engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(bind)
        logger.info("%s started", settings.PROJECT_NAME)
        yield

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)
    app.state.session_factory = session_factory
    app.state.repository = SubmissionRepository(session_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(submissions.router, prefix="/api/v1")
    app.include_router(realtime.router, prefix="/api/v1")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("vlog_portal.main:app", host="0.0.0.0", port=8000, reload=True)
