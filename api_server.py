"""
Question Tree API Server
Admin backend for authoring the branching questionnaire that drives the wizard.

Routes:
- GET    /api/questions
- POST   /api/questions
- PUT    /api/questions
- DELETE /api/questions/{id}
- GET    /health
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.questions import QuestionError, QuestionsConfig, QuestionStore, QuestionStoreError, questions_router

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def create_app(store=None, config: Optional[QuestionsConfig] = None) -> FastAPI:
    """
    Build the API with an explicit store handle.

    Args:
        store: QuestionStore or a substitute exposing session()/ensure_schema()/ping()
        config: settings; read from the environment when omitted
    """
    config = config or QuestionsConfig.from_env()
    if store is None:
        store = QuestionStore.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.auto_schema:
            try:
                store.ensure_schema()
            except QuestionStoreError as e:
                logger.error(f"Schema bootstrap failed, requests will fail until the database is reachable: {e}")
        yield

    # ============================================
    # App Configuration
    # ============================================
    app = FastAPI(
        title="Question Tree API",
        description="Questionnaire graph configuration for the wizard flow",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.questions_config = config
    app.state.question_store = store

    # ============================================
    # CORS Configuration
    # ============================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(QuestionError)
    async def question_error_handler(request: Request, exc: QuestionError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    app.include_router(questions_router)

    @app.get("/health")
    def health_check():
        connected = store.ping()
        return {
            "status": "ok" if connected else "degraded",
            "version": __version__,
            "database_connected": connected,
        }

    return app


app = create_app()
