"""Outbound HTTP client shared by the verification strategies."""

import logging
from typing import Any, TypeVar
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ValidationError

from traefik_tower.auth.errors import InternalError
from traefik_tower.config import Settings

logger = logging.getLogger(__name__)

INTROSPECT_HYDRA_PATH = "/oauth2/introspect"
CLIENTS_ID_HYDRA_PATH = "/clients/{id}"
KETO_ENGINES_ACP_GLOB_ALLOWED = "/engines/acp/ory/glob/allowed"
USER_INFO_COGNITO_PATH = "/oauth2/userInfo"

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_base_url(name: str, value: str) -> str:
    """Check that a backend base URL parses and carries a host.

    Raises:
        ValueError: The URL is empty, unparsable or has no host.
    """
    try:
        hostname = urlsplit(value).hostname
    except ValueError:
        hostname = None
    if not hostname:
        raise ValueError(f"{name} must contain valid url")
    return value.rstrip("/")


class HTTPClient:
    """Build, send and decode calls to the auth backends.

    Wraps one ``httpx.AsyncClient`` that is shared by every request; the
    client keeps no per-request state beyond its connection pool.
    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    def build(
        self,
        method: str,
        url: str,
        *,
        data: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Request:
        """Construct an outbound request.

        Args:
            method: HTTP method.
            url: Absolute target URL.
            data: Form fields, sent URL-encoded.
            json: JSON-serializable payload; pydantic models are dumped first.
            headers: Extra request headers.
        """
        if isinstance(json, BaseModel):
            json = json.model_dump()
        return self._http.build_request(method, url, data=data, json=json, headers=headers)

    async def send(
        self,
        request: httpx.Request,
        response_model: type[ModelT] | None = None,
    ) -> tuple[int, ModelT | None]:
        """Send a request and decode its JSON body into ``response_model``.

        The upstream status code is returned as is; interpreting it is up to
        the caller. The request/response pair is logged at debug level on
        every path, including transport failures.

        Raises:
            InternalError: Transport failure or undecodable response body.
        """
        response: httpx.Response | None = None
        try:
            response = await self._http.send(request)
        except httpx.HTTPError as exc:
            logger.error("HTTP error calling %s %s: %s", request.method, request.url, exc)
            raise InternalError(f"HTTP error calling {request.url}") from exc
        finally:
            self._log_exchange(request, response)

        if response_model is None:
            return response.status_code, None

        try:
            return response.status_code, response_model.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error(
                "Could not decode %s response from %s: %s",
                response_model.__name__,
                request.url,
                exc,
            )
            raise InternalError(f"Invalid response from {request.url}") from exc

    async def aclose(self) -> None:
        await self._http.aclose()

    @staticmethod
    def _log_exchange(request: httpx.Request, response: httpx.Response | None) -> None:
        request_dump = f"{request.method} {request.url}. Data: {_body_text(request.content)}"
        response_dump = ""
        if response is not None:
            header_lines = "".join(f"{name}: {value}\r\n" for name, value in response.headers.items())
            response_dump = (
                f"{response.http_version} {response.status_code} {response.reason_phrase}\r\n"
                f"{header_lines}\r\n{_body_text(response.content)}"
            )
        logger.debug("request: %s\n response: %s\n", request_dump, response_dump)


def _body_text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def create_http_client(settings: Settings) -> HTTPClient:
    """Create the shared HTTP client from settings."""
    return HTTPClient(
        httpx.AsyncClient(
            timeout=settings.http_timeout,
            verify=settings.http_verify_tls,
        )
    )
