"""Routes module for the SafeGuard moderation relay API."""

import json
import logging
from datetime import datetime
from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from safeguard_api.app.config import Settings, get_settings
from safeguard_api.app.errors import InternalError, InvalidBody, RelayError
from safeguard_api.app.models import AnalysisSummary, ErrorResponse
from safeguard_api.app.services.aggregator import render_report, summarize
from safeguard_api.app.services.moderation import RelayedModeration, analyze
from safeguard_api.app.telemetry import annotate_current_span, trace_method

logger = logging.getLogger(__name__)
router = APIRouter()

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Invalid input"},
    status.HTTP_429_TOO_MANY_REQUESTS: {
        "model": ErrorResponse,
        "description": "Moderation provider rate limit reached",
    },
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "model": ErrorResponse,
        "description": "Server misconfiguration or internal error",
    },
    status.HTTP_502_BAD_GATEWAY: {
        "model": ErrorResponse,
        "description": "Moderation provider failure",
    },
}

ANALYZE_REQUEST_BODY: dict[str, Any] = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {
                "schema": {
                    "type": "object",
                    "required": ["text"],
                    "properties": {"text": {"type": "string"}},
                },
                "example": {"text": "I hate everyone"},
            }
        },
    }
}


def get_http_client(req: Request) -> httpx.AsyncClient:
    """Return the shared outbound HTTP client created at startup."""
    return req.app.state.http_client


async def _read_json(req: Request) -> Any:
    body = await req.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except (ValueError, RecursionError) as e:
        raise InvalidBody() from e


async def _relay(
    req: Request, http_client: httpx.AsyncClient, settings: Settings
) -> RelayedModeration:
    """Run the relay for ``req``, guaranteeing a RelayError on failure."""
    try:
        payload = await _read_json(req)
        relayed = await analyze(payload, http_client, settings)
    except RelayError as e:
        logger.warning("Analysis failed: %s (%s)", e.error, e.details)
        raise
    except Exception as e:
        logger.exception("Unexpected error during analysis")
        raise InternalError() from e

    annotate_current_span(flagged=relayed.response.result.flagged)
    return relayed


@router.get(
    "/",
    summary="Root endpoint",
    response_description="API status",
    status_code=status.HTTP_200_OK,
    tags=["Monitoring"],
)
@trace_method("root")
async def root(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    """Root API endpoint.

    Returns:
        A simple status message confirming the API is running.
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.API_VERSION,
    }


@router.get(
    "/health",
    summary="Health check endpoint",
    response_description="Service health status",
    status_code=status.HTTP_200_OK,
    tags=["Monitoring"],
)
@trace_method("health_check")
async def health_check(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """Health check endpoint.

    Reports whether a moderation credential is configured so clients can
    warn before submitting text.
    """
    return {
        "status": "healthy",
        "moderation_configured": settings.moderation_configured,
    }


@router.post(
    "/analyze",
    summary="Classify text with the moderation provider",
    response_description="The provider's moderation result, unchanged",
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    openapi_extra=ANALYZE_REQUEST_BODY,
    tags=["Moderation"],
)
@trace_method("analyze_text")
async def analyze_text(
    req: Request,
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Relays text to the moderation provider.

    The request body must be a JSON object with a ``text`` string. The
    provider's JSON answer is returned as-is.

    Raises:
        RelayError: Reported as ``{error, details}`` with the matching status:
            - 400 for invalid input.
            - 429 when the provider rate limits the request.
            - 500 when the server has no credential or fails unexpectedly.
            - 502 for any other provider failure.
    """
    relayed = await _relay(req, http_client, settings)
    return JSONResponse(content=relayed.payload)


@router.post(
    "/analyze/summary",
    response_model=AnalysisSummary,
    summary="Classify text and summarize it as risk scores",
    response_description="Per-category scores, overall score and verdict",
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    openapi_extra=ANALYZE_REQUEST_BODY,
    tags=["Moderation"],
)
@trace_method("analyze_summary")
async def analyze_summary(
    req: Request,
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> AnalysisSummary:
    """Relays text for moderation and returns the presentation summary."""
    relayed = await _relay(req, http_client, settings)
    summary = summarize(relayed.response.result)
    annotate_current_span(overall=summary.overall, severity=summary.severity)
    logger.info("Overall score %d (%s)", summary.overall, summary.severity)
    return summary


@router.post(
    "/analyze/report",
    response_class=PlainTextResponse,
    summary="Classify text and render a plain-text report",
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    openapi_extra=ANALYZE_REQUEST_BODY,
    tags=["Moderation"],
)
@trace_method("analyze_report")
async def analyze_report(
    req: Request,
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> PlainTextResponse:
    """Relays text for moderation and returns a copyable text report."""
    relayed = await _relay(req, http_client, settings)
    summary = summarize(relayed.response.result)
    return PlainTextResponse(render_report(summary, datetime.now()))
