"""Rakshak FastAPI application entry point.

Creates the FastAPI app, configures middleware, includes routers, and
manages the lifecycle of all backend services (LLM, classifier,
responder tiers, orchestrator, user and alert stores).
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from config.settings import settings
from src.api.router import api_router
from src.middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[settings.log_level.upper()],
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of all Rakshak services.

    On startup:
      1. Initialise the Gemini LLM service and the category classifier
      2. Create the shared HTTP client and the Places directory tier
      3. Create the Gemini knowledge tier
      4. Load the seeded dataset and create the seeded tier
      5. Create the ResolutionOrchestrator
      6. Create the user and alert stores
      7. Store everything on ``app.state``

    On shutdown:
      - Close the shared HTTP client.
    """
    _configure_logging()
    logger.info(
        "app.startup",
        env=settings.env,
        gemini_configured=bool(settings.gemini_api_key),
        places_configured=bool(settings.google_maps_api_key),
    )

    app.state.start_time = time.time()

    # -- 1. LLM service and classifier ----------------------------------------
    from src.services.categorizer import CategoryClassifier
    from src.services.llm import LLMService

    llm = LLMService(
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        search_model_name=settings.gemini_search_model,
    )
    if not llm.is_configured:
        logger.warning("app.llm_not_configured", note="categorization will use the default")
    app.state.llm = llm
    app.state.classifier = CategoryClassifier(llm)
    logger.info("app.classifier_initialised", model=settings.gemini_model)

    # -- 2. Places directory ----------------------------------------------------
    from src.services.responders.directory import PlacesDirectoryResolver

    http_client = httpx.AsyncClient(timeout=settings.places_timeout_seconds)
    directory = PlacesDirectoryResolver(
        api_key=settings.google_maps_api_key,
        client=http_client,
        radius_m=settings.places_search_radius_m,
    )
    if not directory.is_configured:
        logger.warning("app.places_not_configured", note="directory tier will be skipped")
    app.state.directory = directory

    # -- 3. Gemini knowledge search ---------------------------------------------
    from src.services.responders.knowledge import KnowledgeResolver

    knowledge = KnowledgeResolver(llm)
    app.state.knowledge = knowledge

    # -- 4. Seeded dataset ------------------------------------------------------
    from src.data.seed import load_seed_responders
    from src.services.responders.seeded import SeededResponderResolver

    seed_data = load_seed_responders()
    app.state.seed_data = seed_data
    seeded = SeededResponderResolver(seed_data)

    # -- 5. Orchestrator --------------------------------------------------------
    from src.pipeline.orchestrator import ResolutionOrchestrator

    app.state.orchestrator = ResolutionOrchestrator(
        classifier=app.state.classifier,
        resolvers=[directory, knowledge, seeded],
        max_limit=settings.max_responder_limit,
    )
    logger.info("app.orchestrator_initialised", tiers=app.state.orchestrator.tiers)

    # -- 6. Stores --------------------------------------------------------------
    from src.services.storage import AlertStore, UserStore

    app.state.user_store = UserStore()
    app.state.alert_store = AlertStore()

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    await http_client.aclose()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Rakshak API",
    description=(
        "Rakshak -- multilingual emergency assistance. Classifies a crisis "
        "described in any language and returns the nearest matching responders."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- CORS middleware --------------------------------------------------------
# SECURITY: allow_credentials=True must NOT be combined with allow_origins=["*"]
# per the CORS specification (browsers will reject it).
if settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["Content-Type", "Authorization", REQUEST_ID_HEADER],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5000", "http://localhost:5173", "http://127.0.0.1:5000"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS", "HEAD"],
        allow_headers=["Content-Type", "Accept", "Authorization", REQUEST_ID_HEADER],
    )

# -- Custom middleware ------------------------------------------------------
app.add_middleware(RequestContextMiddleware)

# -- Prometheus metrics -----------------------------------------------------
try:
    from prometheus_fastapi_instrumentator import Instrumentator

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/api/health"],
    ).instrument(app).expose(
        app,
        endpoint="/metrics",
        include_in_schema=not settings.is_production,
    )
    logger.info("app.prometheus_metrics_enabled")
except ImportError:
    logger.warning("app.prometheus_not_available")


# -- Exception handlers -----------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    """Malformed input is a client error: 400 rather than FastAPI's 422."""
    logger.info("api.validation_failed", errors=len(exc.errors()))
    return ORJSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception("api.unhandled_error", error_type=type(exc).__name__)
    return ORJSONResponse(status_code=500, content={"detail": "Internal server error"})


# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "Rakshak API",
        "description": "Multilingual emergency categorization and responder lookup",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "categorize": "/api/emergency/categorize",
            "responders": "/api/emergency/responders",
            "resolve": "/api/emergency/resolve",
            "alerts": "/api/alerts",
            "users": "/api/users",
            "health": "/api/health",
        },
        "responder_tiers": ["places", "ai", "seed"],
    }


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
