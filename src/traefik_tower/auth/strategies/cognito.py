"""AWS Cognito verification, via the hosted user-info endpoint or the AWS API."""

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from traefik_tower.auth.credentials import AUTH_BEARER, extract_bearer_token
from traefik_tower.auth.errors import InternalError, UnauthorizedError
from traefik_tower.auth.models import ConsumerID, InboundRequest, UserInfoResponse
from traefik_tower.auth.strategies.base import HTTPVerificationStrategy, VerificationStrategy
from traefik_tower.client import USER_INFO_COGNITO_PATH, HTTPClient, validate_base_url
from traefik_tower.config import AuthType, Settings
from traefik_tower.telemetry import TraceContext

logger = logging.getLogger(__name__)

# GetUser error codes caused by the presented token rather than by us.
UNAUTHORIZED_ERROR_CODES = frozenset(
    {
        "NotAuthorizedException",
        "UserNotFoundException",
        "UserNotConfirmedException",
        "PasswordResetRequiredException",
    }
)


class CognitoUserInfoStrategy(HTTPVerificationStrategy):
    """Resolve the token on the Cognito domain's ``/oauth2/userInfo``."""

    auth_type = AuthType.COGNITO

    def __init__(self, settings: Settings, client: HTTPClient) -> None:
        super().__init__(settings, client)
        self._auth_url = validate_base_url("AUTH_SERVER_URL", settings.auth_server_url)

    async def _verify(self, request: InboundRequest, trace: TraceContext) -> ConsumerID:
        token = extract_bearer_token(request.headers)
        outbound = self._client.build(
            "GET",
            self._auth_url + USER_INFO_COGNITO_PATH,
            headers={
                "Authorization": f"{AUTH_BEARER} {token}",
                "X-Forwarded-Proto": "https",
            },
        )
        result = await self._call(trace, outbound, UserInfoResponse)

        if not result.sub:
            raise UnauthorizedError("User info has no subject")
        return ConsumerID(result.sub)


class CognitoAWSStrategy(VerificationStrategy):
    """Resolve the token with the Cognito Identity Provider ``GetUser`` API."""

    auth_type = AuthType.COGNITO_AWS

    def __init__(self, settings: Settings, cognito_client: Any | None) -> None:
        super().__init__(settings)
        self._cognito = cognito_client

    async def _verify(self, request: InboundRequest, trace: TraceContext) -> ConsumerID:
        token = extract_bearer_token(request.headers)

        if self._cognito is None:
            logger.error("Cognito client is not configured")
            raise InternalError("Cognito client is not configured")

        span = self._start_child(trace, "cognito-idp.GetUser")
        trace.ext_url(span, "POST", self._cognito.meta.endpoint_url)
        try:
            user = await self._get_user(token)
        except ClientError as exc:
            status_code = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            if status_code:
                trace.ext_status(span, status_code)
            code = exc.response.get("Error", {}).get("Code", "")
            if code in UNAUTHORIZED_ERROR_CODES:
                logger.info("Cognito rejected the access token: %s", code)
                raise UnauthorizedError(f"Cognito rejected the access token: {code}") from exc
            logger.error("Cognito GetUser failed: %s", exc)
            raise InternalError("Cognito GetUser failed") from exc
        except BotoCoreError as exc:
            logger.error("Cognito GetUser failed: %s", exc)
            raise InternalError("Cognito GetUser failed") from exc
        except TimeoutError as exc:
            logger.error("Cognito GetUser timed out after %ss", self._settings.http_timeout)
            raise InternalError("Cognito GetUser timed out") from exc
        else:
            trace.ext_status(span, user.get("ResponseMetadata", {}).get("HTTPStatusCode", 200))
        finally:
            self._end_child(trace)

        if self._settings.debug:
            logger.debug("userInfo: %r", user)

        username = user.get("Username")
        if not username:
            raise UnauthorizedError("Cognito user has no username")
        return ConsumerID(username)

    async def _get_user(self, token: str) -> dict[str, Any]:
        # boto3 blocks, so the call always runs in a worker thread.
        call = asyncio.to_thread(self._cognito.get_user, AccessToken=token)
        if self._settings.aws_use_context:
            return await asyncio.wait_for(call, timeout=self._settings.http_timeout)
        return await call


def create_cognito_client(settings: Settings) -> Any | None:
    """Create the ``cognito-idp`` client, or None when Cognito is not configured."""
    if not settings.is_cognito_configured:
        return None
    session = boto3.Session(
        profile_name=settings.aws_profile or None,
        region_name=settings.aws_region,
    )
    return session.client("cognito-idp")
