"""Application configuration management."""

import logging
from functools import lru_cache
from typing import Any

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

# Values that must reach the application verbatim, even when they contain "#".
_RAW_VALUE_FIELDS = {"OPENAI_API_KEY", "MODERATION_API_URL"}


class Settings(BaseSettings):
    """Application settings managed via Pydantic BaseSettings.

    Attributes:
        API_VERSION: The version of the API, used in the docs URLs.
        SERVICE_NAME: Human readable service name reported by the root endpoint.
        OPENAI_API_KEY: Credential for the moderation provider. Optional at
            startup; requests fail individually while it is missing.
        MODERATION_API_URL: The moderation endpoint requests are relayed to.
        MODERATION_MODEL: The moderation model requested from the provider.
        MODERATION_TIMEOUT: Seconds to wait for the provider before giving up.
        MAX_TEXT_LENGTH: Maximum allowed text length for analysis.
        OTEL_ENABLED: Whether OpenTelemetry instrumentation is enabled.
        OTEL_SERVICE_NAME: The service name for OpenTelemetry.
        OTEL_EXPORTER_OTLP_ENDPOINT: The OTLP endpoint for OpenTelemetry.
        OTEL_TRACES_SAMPLER_ARG: The sampling rate for traces.
        OTEL_PYTHON_FASTAPI_EXCLUDED_URLS: URLs to exclude from tracing.
        OTLP_SECURE: Whether to use a secure connection for OTLP.
        PROMETHEUS_MONITORED_PATHS: Comma-separated paths collected by Prometheus.
        LOG_LEVEL: The logging level for the application.
        SERVER_HOST: The host address for the server.
        SERVER_PORT: The port number for the server (``PORT`` is accepted too).
        SERVER_RELOAD: Whether uvicorn reloads on code changes.
        ALLOWED_ORIGINS: Comma-separated string of allowed CORS origins.
    """

    # API Version
    API_VERSION: str = "v1"
    SERVICE_NAME: str = "SafeGuard Moderation Relay"

    # Moderation provider
    OPENAI_API_KEY: SecretStr | None = None
    MODERATION_API_URL: str = "https://api.openai.com/v1/moderations"
    MODERATION_MODEL: str = "omni-moderation-latest"
    MODERATION_TIMEOUT: float = 10.0
    MAX_TEXT_LENGTH: int = 10000

    # OpenTelemetry Configuration
    OTEL_ENABLED: bool = False
    OTEL_SERVICE_NAME: str = "safeguard-api"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_TRACES_SAMPLER_ARG: float = 1.0
    OTEL_PYTHON_FASTAPI_EXCLUDED_URLS: str = "health,metrics"
    OTLP_SECURE: bool = False

    # Prometheus Configuration
    PROMETHEUS_MONITORED_PATHS: str = "analyze,analyze/summary,analyze/report"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = Field(
        default=3000, validation_alias=AliasChoices("SERVER_PORT", "PORT")
    )
    SERVER_RELOAD: bool = False
    ALLOWED_ORIGINS: str = ""

    @model_validator(mode="before")
    @classmethod
    def _strip_inline_comments(cls, data: Any) -> Any:
        if isinstance(data, dict):
            cleaned_data = {}
            for key, value in data.items():
                if isinstance(value, str) and key not in _RAW_VALUE_FIELDS:
                    cleaned_data[key] = value.split("#")[0].strip()
                else:
                    cleaned_data[key] = value
            return cleaned_data
        return data

    @property
    def cors_origins(self) -> list[str]:
        """Get the list of allowed CORS origins.

        Returns:
            A list of allowed CORS origins split from the ALLOWED_ORIGINS setting.
            If no origins are configured, returns an empty list.
        """
        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def moderation_configured(self) -> bool:
        """Whether a non-blank moderation credential is available."""
        if self.OPENAI_API_KEY is None:
            return False
        return bool(self.OPENAI_API_KEY.get_secret_value().strip())

    @property
    def log_level(self) -> int:
        """Convert the string log level from settings to a logging constant.

        Returns:
            The integer value of the logging level (e.g., logging.INFO,
            logging.DEBUG). Defaults to logging.INFO if the configured
            LOG_LEVEL is invalid.
        """
        return getattr(logging, self.LOG_LEVEL.upper(), logging.INFO)

    class Config:
        """Pydantic configuration class for Settings.

        Attributes:
            env_file (str): The name of the environment file to load (e.g., ".env").
            case_sensitive (bool): Whether environment variable names are case-sensitive.
        """

        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Create and cache a Settings instance.

    Returns:
        A cached instance of the Settings class.
    """
    return Settings()


settings = get_settings()
