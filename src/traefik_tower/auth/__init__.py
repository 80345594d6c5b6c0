"""Authentication module.

Bearer credentials are verified by one of the strategies in
``traefik_tower.auth.strategies``; this package holds what they share:
the consumer identity, the backend payload models and the two failure
kinds the forward-auth boundary maps to HTTP 401 and 500.
"""

from traefik_tower.auth.credentials import AUTH_BEARER, extract_bearer_token
from traefik_tower.auth.errors import InternalError, UnauthorizedError, VerificationError
from traefik_tower.auth.models import (
    ClientInfoResponse,
    ConsumerID,
    InboundRequest,
    IntrospectionResponse,
    PolicyCheckRequest,
    PolicyCheckResponse,
    UserInfoResponse,
)

__all__ = [
    # Credentials
    "AUTH_BEARER",
    "extract_bearer_token",
    # Errors
    "InternalError",
    "UnauthorizedError",
    "VerificationError",
    # Models
    "ClientInfoResponse",
    "ConsumerID",
    "InboundRequest",
    "IntrospectionResponse",
    "PolicyCheckRequest",
    "PolicyCheckResponse",
    "UserInfoResponse",
]
