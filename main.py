# main.py
"""FastAPI application: one Runtime per process, shared by every request"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.endpoints import INTERNAL_ERROR_DETAIL, router
from config import settings
from core.exceptions import RAGError
from services.factory import Runtime
from services.logger_config import setup_logging

setup_logging()
logger = logging.getLogger(settings.LOGGER_NAME)


def create_app(runtime: Optional[Runtime] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info("Starting application...")
        app.state.runtime = runtime or Runtime()

        # Embedding/chat paths cannot work without a key: fail at startup
        app.state.runtime.openai_client
        logger.info("Services initialized")
        yield

        await app.state.runtime.aclose()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.APP_TITLE,
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    @app.exception_handler(RAGError)
    async def rag_error_handler(request: Request, exc: RAGError) -> JSONResponse:
        # Failures raised while resolving dependencies (e.g. configuration)
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"detail": INTERNAL_ERROR_DETAIL})

    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
