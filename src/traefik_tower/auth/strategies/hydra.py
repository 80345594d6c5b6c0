"""ORY Hydra token introspection, optionally combined with a Keto policy check."""

import logging
from urllib.parse import quote

from traefik_tower.auth.credentials import AUTH_BEARER, extract_bearer_token
from traefik_tower.auth.errors import UnauthorizedError
from traefik_tower.auth.models import (
    ClientInfoResponse,
    ConsumerID,
    InboundRequest,
    IntrospectionResponse,
    PolicyCheckRequest,
    PolicyCheckResponse,
)
from traefik_tower.auth.strategies.base import HTTPVerificationStrategy
from traefik_tower.client import (
    CLIENTS_ID_HYDRA_PATH,
    INTROSPECT_HYDRA_PATH,
    KETO_ENGINES_ACP_GLOB_ALLOWED,
    HTTPClient,
    validate_base_url,
)
from traefik_tower.config import AuthType, Settings
from traefik_tower.telemetry import TraceContext

logger = logging.getLogger(__name__)

HEADER_X_FORWARDED_URI = "X-Forwarded-Uri"
HOME_RESOURCE = "home"


def normalize_resource(forwarded_uri: str) -> str:
    """Turn a forwarded path into a Keto resource name.

    ``/orders/42/`` becomes ``orders:42``; an empty path becomes ``home``.
    """
    return forwarded_uri.strip("/").replace("/", ":") or HOME_RESOURCE


class HydraIntrospectionStrategy(HTTPVerificationStrategy):
    """Accept active tokens; the consumer is the token's OAuth client."""

    auth_type = AuthType.HYDRA

    def __init__(self, settings: Settings, client: HTTPClient) -> None:
        super().__init__(settings, client)
        self._auth_url = validate_base_url("AUTH_SERVER_URL", settings.auth_server_url)

    async def _verify(self, request: InboundRequest, trace: TraceContext) -> ConsumerID:
        token = extract_bearer_token(request.headers)
        return await self.introspect(token, trace)

    async def introspect(self, token: str, trace: TraceContext) -> ConsumerID:
        """POST the token to ``/oauth2/introspect``.

        Raises:
            UnauthorizedError: Token inactive or issued to no client.
        """
        outbound = self._client.build(
            "POST",
            self._auth_url + INTROSPECT_HYDRA_PATH,
            data={"token": token},
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "X-Forwarded-Proto": "https",
            },
        )
        result = await self._call(trace, outbound, IntrospectionResponse)

        if not result.active:
            raise UnauthorizedError("Token is not active")
        if not result.client_id:
            raise UnauthorizedError("Introspection response has no client_id")
        return ConsumerID(result.client_id)


class HydraKetoStrategy(HydraIntrospectionStrategy):
    """Introspect the token, resolve the client's role, ask Keto.

    The three calls run in order, each depending on the previous result:

    1. introspection yields the client id (the consumer identity);
    2. ``GET /clients/{id}`` yields the client's ``role`` metadata;
    3. Keto decides whether that role may perform the request method on
       the forwarded resource.
    """

    auth_type = AuthType.HYDRA_KETO

    def __init__(self, settings: Settings, client: HTTPClient) -> None:
        super().__init__(settings, client)
        self._keto_url = (
            validate_base_url("KETO_URL", settings.keto_url) if settings.keto_url else ""
        )

    async def _verify(self, request: InboundRequest, trace: TraceContext) -> ConsumerID:
        token = extract_bearer_token(request.headers)
        consumer_id = await self.introspect(token, trace)
        client_info = await self.client_info(token, consumer_id, trace)
        await self.check_policy(request, client_info.role, trace)
        return consumer_id

    async def client_info(
        self, token: str, client_id: str, trace: TraceContext
    ) -> ClientInfoResponse:
        """Fetch the OAuth client, authenticated with the caller's token.

        Raises:
            UnauthorizedError: The response carries no client_id.
        """
        path = CLIENTS_ID_HYDRA_PATH.replace("{id}", quote(client_id, safe=""))
        outbound = self._client.build(
            "GET",
            self._auth_url + path,
            headers={
                "Authorization": f"{AUTH_BEARER} {token}",
                "X-Forwarded-Proto": "https",
            },
        )
        result = await self._call(trace, outbound, ClientInfoResponse)

        if not result.client_id:
            raise UnauthorizedError("Client not found")
        return result

    async def check_policy(self, request: InboundRequest, subject: str, trace: TraceContext) -> None:
        """Ask Keto whether ``subject`` may access the forwarded resource.

        Raises:
            UnauthorizedError: Keto is not configured or denies access.
        """
        if not self._keto_url:
            raise UnauthorizedError("Policy engine is not configured")

        policy_request = PolicyCheckRequest(
            action=request.method,
            resource=normalize_resource(request.header(HEADER_X_FORWARDED_URI)),
            subject=subject,
        )
        if self._settings.debug:
            logger.debug("Keto policy check: %r", policy_request)

        outbound = self._client.build(
            "POST",
            self._keto_url + KETO_ENGINES_ACP_GLOB_ALLOWED,
            json=policy_request,
            headers={"X-Forwarded-Proto": "https"},
        )
        result = await self._call(trace, outbound, PolicyCheckResponse)

        if not result.allowed:
            raise UnauthorizedError("Access denied by policy")
