"""Relay service: validates text and forwards it to the moderation provider."""

import asyncio
import logging
import time
from typing import Any, NamedTuple

import httpx
from fastapi import status

from safeguard_api.app.config import Settings
from safeguard_api.app.errors import (
    EmptyInput,
    InvalidType,
    MissingInput,
    RateLimited,
    RelayError,
    ServerMisconfigured,
    TooLong,
    UpstreamAuthFailed,
    UpstreamError,
    UpstreamMalformed,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from safeguard_api.app.models import AnalyzeRequest, ModerationResponse
from safeguard_api.app.prometheus import track_flagged_category, track_upstream_call

logger = logging.getLogger(__name__)

# Upstream error bodies are logged for diagnostics, cut to this many characters.
_ERROR_BODY_LOG_LIMIT = 500


class RelayedModeration(NamedTuple):
    """A provider answer, both verbatim and parsed."""

    payload: dict[str, Any]
    response: ModerationResponse


def validate_payload(payload: Any, max_length: int) -> AnalyzeRequest:
    """Check a decoded request body, stopping at the first failure.

    Args:
        payload: The decoded JSON body of the request.
        max_length: Maximum number of characters accepted.

    Returns:
        AnalyzeRequest holding the text exactly as submitted.

    Raises:
        MissingInput: ``text`` is absent or null.
        InvalidType: ``text`` is not a string.
        EmptyInput: ``text`` is blank once trimmed.
        TooLong: ``text`` is longer than ``max_length``.
    """
    if not isinstance(payload, dict) or payload.get("text") is None:
        raise MissingInput()
    text = payload["text"]
    if not isinstance(text, str):
        raise InvalidType()
    if not text.strip():
        raise EmptyInput()
    if len(text) > max_length:
        raise TooLong(max_length=max_length, length=len(text))
    return AnalyzeRequest(text=text)


class ModerationClient:
    """Sends one text per call to the moderation provider.

    The client never retries. Every failure is translated into one of the
    UpstreamError subclasses before leaving this class.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        self.http_client = http_client
        self.settings = settings

    def _headers(self) -> dict[str, str]:
        if not self.settings.moderation_configured:
            raise ServerMisconfigured()
        api_key = self.settings.OPENAI_API_KEY.get_secret_value()
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    async def moderate(self, text: str) -> RelayedModeration:
        """Classify ``text`` with the provider.

        Raises:
            ServerMisconfigured: No API key is configured; nothing is sent.
            UpstreamError: The provider call failed, see module errors.
        """
        headers = self._headers()
        body = {"model": self.settings.MODERATION_MODEL, "input": text}
        timeout = self.settings.MODERATION_TIMEOUT

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.http_client.post(
                    self.settings.MODERATION_API_URL,
                    json=body,
                    headers=headers,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            track_upstream_call(UpstreamTimeout.error, time.perf_counter() - start)
            logger.warning("Moderation request timed out after %.1fs", timeout)
            raise UpstreamTimeout() from e
        except httpx.TransportError as e:
            track_upstream_call(UpstreamUnavailable.error, time.perf_counter() - start)
            logger.warning("Moderation service unreachable: %s", type(e).__name__)
            raise UpstreamUnavailable() from e
        duration = time.perf_counter() - start

        if not response.is_success:
            error = self._translate_status(response)
            track_upstream_call(error.error, duration)
            raise error

        try:
            payload = response.json()
            parsed = ModerationResponse.model_validate(payload)
        except ValueError as e:
            track_upstream_call(UpstreamMalformed.error, duration)
            logger.error("Moderation response could not be parsed: %s", str(e))
            raise UpstreamMalformed() from e

        track_upstream_call("success", duration)
        for category, flagged in parsed.result.categories.items():
            if flagged:
                track_flagged_category(category)
        logger.info(
            "Moderation completed in %.3fs (flagged=%s)", duration, parsed.result.flagged
        )
        return RelayedModeration(payload=payload, response=parsed)

    @staticmethod
    def _translate_status(response: httpx.Response) -> RelayError:
        logger.error(
            "Moderation API error: status=%d body=%s",
            response.status_code,
            response.text[:_ERROR_BODY_LOG_LIMIT],
        )
        if response.status_code == status.HTTP_401_UNAUTHORIZED:
            return UpstreamAuthFailed(upstream_status=response.status_code)
        if response.status_code == status.HTTP_429_TOO_MANY_REQUESTS:
            return RateLimited(retry_after=response.headers.get("Retry-After"))
        return UpstreamError(upstream_status=response.status_code)


async def analyze(
    payload: Any, http_client: httpx.AsyncClient, settings: Settings
) -> RelayedModeration:
    """Validate a request body and relay its text for moderation.

    Validation and the credential check both happen before any outbound
    call is made.

    Args:
        payload: The decoded JSON body of the request.
        http_client: Shared HTTP client used for the outbound call.
        settings: Settings providing the limit, endpoint and credential.

    Returns:
        RelayedModeration with the provider payload passed through unchanged.
    """
    request = validate_payload(payload, settings.MAX_TEXT_LENGTH)
    client = ModerationClient(http_client, settings)
    return await client.moderate(request.text)
