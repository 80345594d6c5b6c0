"""Application settings and configuration management."""

from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthType(str, Enum):
    """Verification strategy selected at startup."""

    HYDRA = "hydra"
    HYDRA_KETO = "hydra-keto"
    COGNITO = "cognito"
    COGNITO_AWS = "cognito-aws"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=8000,
        description="Server port",
    )

    # Verification Strategy
    auth_type: AuthType = Field(
        default=AuthType.HYDRA,
        description="Verification strategy: hydra, hydra-keto, cognito or cognito-aws",
    )
    auth_server_url: str = Field(
        default="",
        description="Base URL of the OAuth2 server (Hydra or the Cognito domain)",
    )
    keto_url: str = Field(
        default="",
        description="Base URL of the Keto policy engine. Empty denies every request in hydra-keto mode.",
    )

    # AWS Cognito Configuration
    aws_region: str = Field(
        default="eu-west-1",
        description="AWS region of the Cognito user pool",
    )
    aws_profile: str = Field(
        default="",
        description="AWS credentials profile. Empty uses the default credential chain.",
    )
    aws_use_context: bool = Field(
        default=True,
        description="Bound the Cognito GetUser call by HTTP_TIMEOUT",
    )
    cognito_app_client_id: str = Field(
        default="",
        description="Cognito app client ID",
    )
    cognito_user_pool_id: str = Field(
        default="",
        description="Cognito user pool ID",
    )

    # Outbound HTTP
    http_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for calls to the auth backends",
    )
    http_verify_tls: bool = Field(
        default=True,
        description="Verify TLS certificates of the auth backends",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log format",
    )

    # Development Settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode: per-call request/response logging and the /200, /404 routes",
    )
    tracing_debug: bool = Field(
        default=False,
        description="Also print finished spans to the console",
    )

    # OpenTelemetry Configuration
    otel_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    otel_service_name: str = Field(
        default="traefik-tower",
        description="Service name for OpenTelemetry traces",
    )
    otel_exporter_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        description="OTLP exporter endpoint (gRPC)",
    )
    otel_exporter_otlp_http_endpoint: str = Field(
        default="http://localhost:4318",
        description="OTLP exporter endpoint (HTTP)",
    )
    otel_exporter_type: Literal["otlp", "otlp-http", "zipkin", "console"] = Field(
        default="otlp",
        description="Telemetry exporter type",
    )
    otel_traces_sampler: Literal[
        "always_on",
        "always_off",
        "traceidratio",
        "parentbased_always_on",
        "parentbased_always_off",
        "parentbased_traceidratio",
    ] = Field(
        default="parentbased_always_on",
        description="Trace sampling strategy",
    )
    otel_traces_sampler_arg: float = Field(
        default=1.0,
        description="Sampler argument (e.g., ratio for traceidratio)",
    )
    otel_propagator: Literal["tracecontext", "jaeger"] = Field(
        default="tracecontext",
        description="Trace header format read from the proxy and written to the backends",
    )

    @property
    def is_cognito_configured(self) -> bool:
        """True when a Cognito user pool or app client is configured."""
        return bool(self.cognito_app_client_id or self.cognito_user_pool_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
