"""Error vocabulary for the relay.

Every failure the service reports is one of the exceptions below. Each
carries the HTTP status it is reported with, a stable ``error`` code and a
human readable ``details`` message. Upstream status codes are never
surfaced directly; they are translated into one of these classes first.
"""

from typing import Any

from fastapi import status


class RelayError(Exception):
    """Base class for errors reported as ``{error, details}`` payloads."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "InternalError"
    default_details: str = "Internal server error occurred"

    def __init__(self, details: str | None = None, **context: Any) -> None:
        self.details = details or self.default_details
        self.context = context
        super().__init__(self.details)

    @property
    def headers(self) -> dict[str, str] | None:
        return None

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "details": self.details}


# Validation errors (client fixable)


class ValidationError(RelayError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "ValidationError"
    default_details = "Valid text input is required"


class InvalidBody(ValidationError):
    error = "InvalidBody"
    default_details = "Request body must be valid JSON"


class MissingInput(ValidationError):
    error = "MissingInput"
    default_details = "Field 'text' is required"


class InvalidType(ValidationError):
    error = "InvalidType"
    default_details = "Field 'text' must be a string"


class EmptyInput(ValidationError):
    error = "EmptyInput"
    default_details = "Field 'text' must not be empty"


class TooLong(ValidationError):
    error = "TooLong"

    def __init__(self, max_length: int, length: int) -> None:
        super().__init__(
            f"Text exceeds maximum length of {max_length} characters (got {length})",
            max_length=max_length,
            length=length,
        )


# Configuration errors (operator fixable)


class ConfigurationError(RelayError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "ConfigurationError"
    default_details = "Server configuration error"


class ServerMisconfigured(ConfigurationError):
    error = "ServerMisconfigured"
    default_details = "Server configuration error (API key missing)"


# Upstream errors (depend on the moderation provider)


class UpstreamError(RelayError):
    """The moderation provider answered with an unexpected status."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "UpstreamError"
    default_details = "Moderation service failed"

    def __init__(
        self,
        details: str | None = None,
        upstream_status: int | None = None,
        **context: Any,
    ) -> None:
        self.upstream_status = upstream_status
        # Subclasses keep their own default_details.
        generic = type(self) is UpstreamError
        if details is None and upstream_status is not None and generic:
            details = f"Moderation service failed with status {upstream_status}"
        super().__init__(details, upstream_status=upstream_status, **context)


class UpstreamAuthFailed(UpstreamError):
    error = "UpstreamAuthFailed"
    default_details = "Moderation service rejected the server credentials"


class RateLimited(UpstreamError):
    """The provider throttled us; the caller may resubmit later."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "RateLimited"
    default_details = "Moderation service rate limit reached, please retry later"

    def __init__(
        self,
        details: str | None = None,
        upstream_status: int | None = status.HTTP_429_TOO_MANY_REQUESTS,
        retry_after: str | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(details, upstream_status=upstream_status)

    @property
    def headers(self) -> dict[str, str] | None:
        if self.retry_after:
            return {"Retry-After": self.retry_after}
        return None


class UpstreamMalformed(UpstreamError):
    error = "UpstreamMalformed"
    default_details = "Moderation service returned an unreadable response"


class UpstreamTimeout(UpstreamError):
    error = "UpstreamTimeout"
    default_details = "Moderation service did not respond in time"


class UpstreamUnavailable(UpstreamError):
    error = "UpstreamUnavailable"
    default_details = "Moderation service could not be reached"


class InternalError(RelayError):
    """Anything not anticipated by the classes above."""
