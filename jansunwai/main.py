"""JanSunwai FastAPI application entry point.

Creates the FastAPI app, configures middleware, includes routers, and
wires the complaint lifecycle engine and its collaborators (repository,
identity directory, classifier) onto ``app.state``.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from jansunwai.api.router import api_router
from jansunwai.errors import JanSunwaiError, ValidationError
from jansunwai.middleware.rate_limit import RateLimitMiddleware

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
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            settings.log_level,
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
    """Build the engine and its collaborators, store them on ``app.state``.

    On startup:
      1. Complaint repository and identity directory (seeded from
         ``identities.json`` unless disabled)
      2. Classifier (remote when ``CLASSIFIER_URL`` is set, keyword otherwise)
      3. Fraud gate and duplicate detector
      4. Intake, lifecycle engine and review service

    On shutdown the remote classifier's HTTP client is closed.
    """
    _configure_logging()
    logger.info("app.startup", env=settings.env, classifier_url=settings.classifier_url)

    app.state.start_time = time.time()

    # -- 1. Storage and identity --------------------------------------------
    from jansunwai.services.identity import InMemoryIdentityDirectory
    from jansunwai.services.repository import ComplaintRepository

    repository = ComplaintRepository()
    directory = InMemoryIdentityDirectory()
    app.state.repository = repository
    app.state.directory = directory

    if settings.seed_identities:
        try:
            from jansunwai.data.seed import seed_identities

            seed = await seed_identities(directory, Path(settings.seed_file) if settings.seed_file else None)
            logger.info("app.identities_seeded", actors=len(seed.actors))
        except Exception:
            logger.warning("app.identity_seed_failed", seed_file=settings.seed_file, exc_info=True)

    # -- 2. Classifier --------------------------------------------------------
    from jansunwai.services.classifier import HttpComplaintClassifier, KeywordComplaintClassifier

    remote: HttpComplaintClassifier | None = None
    if settings.classifier_url:
        remote = HttpComplaintClassifier(
            settings.classifier_url,
            api_key=settings.classifier_api_key,
            timeout_seconds=settings.classifier_timeout_seconds,
            max_attempts=settings.classifier_max_attempts,
        )
        logger.info("app.classifier_remote", url=settings.classifier_url)
    else:
        logger.warning("app.classifier_keyword_fallback", note="CLASSIFIER_URL not set")
    classifier = remote or KeywordComplaintClassifier()
    app.state.classifier = classifier
    app.state.classifier_remote = remote is not None

    # -- 3. Admission policy --------------------------------------------------
    from jansunwai.services.intake import ComplaintIntake, DuplicateDetector, FraudGate

    gate = FraudGate(directory, penalty_amount=settings.fake_complaint_penalty)
    detector = DuplicateDetector(
        repository,
        lookback_days=settings.duplicate_lookback_days,
        similarity_threshold=settings.duplicate_similarity_threshold,
        max_distance_m=settings.duplicate_max_distance_m,
    )

    # -- 4. Engine and services -----------------------------------------------
    from jansunwai.services.lifecycle import ComplaintLifecycleEngine
    from jansunwai.services.review import ReviewService

    # The per-call bound sits above the classifier's own retry budget.
    dependency_timeout = settings.classifier_timeout_seconds * settings.classifier_max_attempts + 5

    app.state.intake = ComplaintIntake(
        repository,
        classifier,
        gate,
        detector,
        dependency_timeout=dependency_timeout,
    )
    app.state.engine = ComplaintLifecycleEngine(
        repository,
        directory,
        max_reopens=settings.max_reopens,
    )
    app.state.review = ReviewService(
        repository,
        classifier,
        directory=directory,
        dependency_timeout=dependency_timeout,
        high_risk_threshold=settings.high_risk_threshold,
    )
    logger.info("app.startup_complete", max_reopens=settings.max_reopens)

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    if remote is not None:
        await remote.close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="JanSunwai API",
    description=(
        "JanSunwai -- citizen grievance lifecycle service. Complaints with "
        "photo evidence and location move from citizen to department and "
        "back until resolved, rejected or closed."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)


# -- Error handlers ---------------------------------------------------------


@app.exception_handler(JanSunwaiError)
async def _domain_error_handler(request: Request, exc: JanSunwaiError) -> ORJSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "app.request_rejected",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        rule=exc.code,
    )
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> ORJSONResponse:
    """Framework errors (unknown route, wrong method) in the domain error shape."""
    return ORJSONResponse(
        status_code=exc.status_code,
        content={
            "status_code": exc.status_code,
            "message": str(exc.detail),
            "details": {"rule": "http_error", "path": request.url.path},
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    """Render body/query validation failures in the domain error shape."""
    first = exc.errors()[0] if exc.errors() else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc) or "request"
    error = ValidationError(field, f"{field}: {first.get('msg', 'invalid input')}")
    return ORJSONResponse(status_code=error.status_code, content=error.to_payload())


# -- CORS middleware --------------------------------------------------------
if settings.is_production:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Actor-Id"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:8000", "http://127.0.0.1:8000"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=["Content-Type", "Accept", "Authorization", "X-Actor-Id"],
    )

# -- Custom middleware ------------------------------------------------------
app.add_middleware(
    RateLimitMiddleware,
    max_requests_per_minute=settings.rate_limit_per_minute,
    trusted_proxy_count=settings.trusted_proxy_count,
)

# -- Prometheus metrics -----------------------------------------------------
try:
    from prometheus_fastapi_instrumentator import Instrumentator

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/api/v1/health"],
    ).instrument(app).expose(
        app,
        endpoint="/metrics",
        include_in_schema=not settings.is_production,
    )
    logger.info("app.prometheus_metrics_enabled")
except ImportError:
    logger.warning("app.prometheus_not_available")

# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "JanSunwai API",
        "description": "Citizen grievance lifecycle service",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "complaints": "/api/v1/complaints",
            "departments": "/api/v1/departments/{department}/complaints",
            "fraud_review": "/api/v1/fraud",
            "health": "/api/v1/health",
        },
        "policy": {
            "max_reopens": settings.max_reopens,
            "fake_complaint_penalty": settings.fake_complaint_penalty,
            "duplicate_window_days": settings.duplicate_lookback_days,
            "duplicate_max_distance_m": settings.duplicate_max_distance_m,
        },
    }
