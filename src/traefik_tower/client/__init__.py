"""Outbound HTTP client for the auth backends."""

from traefik_tower.client.http import (
    CLIENTS_ID_HYDRA_PATH,
    INTROSPECT_HYDRA_PATH,
    KETO_ENGINES_ACP_GLOB_ALLOWED,
    USER_INFO_COGNITO_PATH,
    HTTPClient,
    create_http_client,
    validate_base_url,
)

__all__ = [
    "CLIENTS_ID_HYDRA_PATH",
    "INTROSPECT_HYDRA_PATH",
    "KETO_ENGINES_ACP_GLOB_ALLOWED",
    "USER_INFO_COGNITO_PATH",
    "HTTPClient",
    "create_http_client",
    "validate_base_url",
]
