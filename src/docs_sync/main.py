"""FastAPI application exposing the GitHub webhook.

Endpoints:
- POST /webhooks/github - Receives GitHub deliveries; runs the pipeline for
  published releases and ignores everything else
- GET /health - Health check for load balancers and monitoring

Architecture notes:
- FastAPI handles HTTP concerns (routing, signature check, status codes)
- The pipeline handles business logic; errors it raises are mapped to
  status codes by the exception handlers below
- One GitHubClient (one connection pool) is shared for the app's lifetime

To run locally:
    uvicorn docs_sync.main:app --reload --port 8000
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from docs_sync.config import DocsSyncConfig, load_config
from docs_sync.errors import DocsSyncError, NotFoundError, UpstreamError, ValidationError
from docs_sync.github import GitHubClient
from docs_sync.logging_config import get_logger, setup_logging
from docs_sync.pipeline import DocsSyncPipeline, build_pipeline, pipeline_input_from_config
from docs_sync.webhook import is_release_published, parse_release_event, verify_signature

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Application Lifespan (startup/shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load config and build the pipeline once at startup."""
    setup_logging()
    config = load_config()
    github = GitHubClient(
        token=config.github_token,
        base_url=config.github_api_url,
        timeout=config.request_timeout,
    )
    async with github:
        app.state.config = config
        app.state.pipeline = build_pipeline(config, github=github)
        logger.info("app_started", base_branch=config.base_branch)
        yield


# ---------------------------------------------------------------------------
# FastAPI App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Docs Sync Agent",
    description="Opens documentation pull requests for published GitHub releases",
    version="0.1.0",
    lifespan=lifespan,
)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.time()
        response = await call_next(request)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration=round(time.time() - start, 3),
        )
        return response


app.add_middleware(LoggingMiddleware)

# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------

ERROR_STATUS: dict[type[DocsSyncError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    UpstreamError: 502,
}


@app.exception_handler(DocsSyncError)
async def docs_sync_error_handler(request: Request, exc: DocsSyncError) -> JSONResponse:
    """Map the pipeline's error taxonomy to status codes."""
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500
    )
    logger.warning("request_failed", path=request.url.path, error=exc.code, detail=exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Invalid configuration or drafting output that never became valid."""
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_config(request: Request) -> DocsSyncConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        config = load_config()
        request.app.state.config = config
    return config


def _get_pipeline(request: Request) -> DocsSyncPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = build_pipeline(_get_config(request))
        request.app.state.pipeline = pipeline
    return pipeline


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@app.post("/webhooks/github")
async def github_webhook(request: Request) -> JSONResponse:
    """Handle a GitHub webhook delivery.

    Returns:
        {"status": "ignored"} for anything but a published release, and for
        a published release whose payload lacks required fields,
        {"status": "completed", "result": ...} after a successful run
    """
    config = _get_config(request)
    raw_body = await request.body()

    if config.webhook_secret and not verify_signature(
        config.webhook_secret, raw_body, request.headers.get("x-hub-signature-256")
    ):
        logger.warning("webhook_signature_invalid")
        return JSONResponse(
            status_code=401,
            content={"error": "invalid_signature", "detail": "signature mismatch"},
        )

    try:
        payload = json.loads(raw_body) if raw_body else {}
    except ValueError:
        payload = {}

    event = request.headers.get("x-github-event")
    if not is_release_published(event, payload):
        logger.info(
            "webhook_ignored",
            event_type=event,
            action=payload.get("action") if isinstance(payload, dict) else None,
        )
        return JSONResponse(status_code=200, content={"status": "ignored"})

    try:
        release_event = parse_release_event(payload)
    except ValidationError as e:
        logger.info("webhook_ignored", event_type=event, action="published", reason=e.message)
        return JSONResponse(status_code=200, content={"status": "ignored"})

    pipeline = _get_pipeline(request)
    result = await pipeline.run(
        pipeline_input_from_config(
            config, release_event.owner, release_event.repo, release_event.tag_name
        )
    )
    return JSONResponse(
        status_code=200,
        content={"status": "completed", "result": result.model_dump()},
    )
