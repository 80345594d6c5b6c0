"""Verification strategies and their selection by ``AUTH_TYPE``."""

from typing import Any

from traefik_tower.auth.strategies.base import HTTPVerificationStrategy, VerificationStrategy
from traefik_tower.auth.strategies.cognito import (
    CognitoAWSStrategy,
    CognitoUserInfoStrategy,
    create_cognito_client,
)
from traefik_tower.auth.strategies.hydra import (
    HydraIntrospectionStrategy,
    HydraKetoStrategy,
    normalize_resource,
)
from traefik_tower.client import HTTPClient
from traefik_tower.config import AuthType, Settings

HTTP_STRATEGIES: dict[AuthType, type[HTTPVerificationStrategy]] = {
    AuthType.HYDRA: HydraIntrospectionStrategy,
    AuthType.HYDRA_KETO: HydraKetoStrategy,
    AuthType.COGNITO: CognitoUserInfoStrategy,
}


def build_strategy(
    settings: Settings,
    *,
    http_client: HTTPClient | None = None,
    cognito_client: Any | None = None,
) -> VerificationStrategy:
    """Create the strategy selected by ``settings.auth_type``.

    Raises:
        ValueError: A backend URL the strategy needs is missing or invalid,
            or an HTTP strategy was requested without an HTTP client.
    """
    if settings.auth_type is AuthType.COGNITO_AWS:
        return CognitoAWSStrategy(settings, cognito_client)

    if http_client is None:
        raise ValueError(f"AUTH_TYPE={settings.auth_type.value} requires an HTTP client")
    return HTTP_STRATEGIES[settings.auth_type](settings, http_client)


__all__ = [
    "CognitoAWSStrategy",
    "CognitoUserInfoStrategy",
    "HTTPVerificationStrategy",
    "HydraIntrospectionStrategy",
    "HydraKetoStrategy",
    "VerificationStrategy",
    "build_strategy",
    "create_cognito_client",
    "normalize_resource",
]
