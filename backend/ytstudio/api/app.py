"""FastAPI application serving one StudioPipeline, with state-machine error mapping."""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ytstudio import __version__, validate_configuration
from ytstudio.api.routes import router
from ytstudio.errors import ActionInProgressError, InvalidTransitionError
from ytstudio.orchestrator import StudioPipeline
from ytstudio.orchestrator.factory import build_pipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Startup:
        - Validate configuration (API key)
        - Build the pipeline unless one was injected

    Shutdown:
        - Reset the pipeline, cancelling any in-flight video generation
    """
    logger.info("Starting ytstudio API...")
    if app.state.pipeline is None:
        validate_configuration()
        app.state.pipeline = build_pipeline()
    logger.info("API startup complete")

    yield

    logger.info("Shutting down ytstudio API...")
    app.state.pipeline.reset()
    logger.info("API shutdown complete")


async def transition_exception_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(
        status_code=409,
        content={"error": "Invalid transition", "detail": str(exc), "stage": exc.stage},
    )


async def in_progress_exception_handler(request: Request, exc: ActionInProgressError):
    return JSONResponse(
        status_code=409,
        content={"error": "Action in progress", "detail": str(exc), "action": exc.action},
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Report unhandled errors as JSON 500s without a traceback."""
    logger.error(f"Unhandled exception in {request.method} {request.url.path}: {type(exc).__name__}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        }
    )


def create_app(pipeline: Optional[StudioPipeline] = None) -> FastAPI:
    """Create the API application.

    Args:
        pipeline: Pipeline to serve. When None, one is built at startup
            from the production collaborators.
    """
    application = FastAPI(
        title="ytstudio API",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.pipeline = pipeline

    # CORS for Vite dev server
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    application.add_exception_handler(InvalidTransitionError, transition_exception_handler)
    application.add_exception_handler(ActionInProgressError, in_progress_exception_handler)
    application.add_exception_handler(Exception, generic_exception_handler)
    return application


app = create_app()
