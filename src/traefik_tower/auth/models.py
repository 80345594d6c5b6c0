"""Pydantic models for the consumer identity and the auth backend payloads."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NewType

import httpx
from pydantic import BaseModel, ConfigDict, Field

# Identity handed to the proxy in the X-Consumer-Id header.
ConsumerID = NewType("ConsumerID", str)

METADATA_ROLE_NAME = "role"


@dataclass(frozen=True)
class InboundRequest:
    """The parts of the proxied request the verification strategies read."""

    method: str
    path: str
    headers: httpx.Headers

    @classmethod
    def create(
        cls,
        method: str,
        path: str,
        headers: Mapping[str, str] | Sequence[tuple[bytes, bytes]] | None = None,
    ) -> "InboundRequest":
        return cls(method=method.upper(), path=path or "/", headers=httpx.Headers(headers))

    def header(self, name: str) -> str:
        """All values of a header joined with a comma, or an empty string."""
        return ",".join(self.headers.get_list(name))


class _RemoteModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class IntrospectionResponse(_RemoteModel):
    """Hydra token introspection response (RFC 7662)."""

    active: bool = Field(default=False, description="Whether the token is active")
    scope: str | None = Field(default=None, description="Granted scopes")
    client_id: str = Field(default="", description="Client the token was issued to")
    sub: str | None = Field(default=None, description="Subject")
    exp: int | None = Field(default=None, description="Expiration time (Unix timestamp)")
    iat: int | None = Field(default=None, description="Issued at time (Unix timestamp)")
    iss: str | None = Field(default=None, description="Issuer")
    token_type: str | None = Field(default=None, description="Token type")


class ClientInfoResponse(_RemoteModel):
    """Hydra OAuth2 client as returned by ``GET /clients/{id}``."""

    client_id: str = Field(default="", description="OAuth client ID")
    metadata: dict[str, Any] | None = Field(default=None, description="Free-form client metadata")

    @property
    def role(self) -> str:
        """Role stored in the client metadata, or an empty string."""
        value = (self.metadata or {}).get(METADATA_ROLE_NAME)
        return value if isinstance(value, str) else ""


class PolicyCheckRequest(BaseModel):
    """Keto ORY access control policy check."""

    action: str
    resource: str
    subject: str


class PolicyCheckResponse(_RemoteModel):
    """Keto policy decision."""

    allowed: bool = False


class UserInfoResponse(_RemoteModel):
    """Cognito ``/oauth2/userInfo`` response."""

    sub: str = Field(default="", description="Subject (user ID)")
    name: str | None = Field(default=None, description="Full name")
    given_name: str | None = Field(default=None, description="Given name")
    family_name: str | None = Field(default=None, description="Family name")
    preferred_username: str | None = Field(default=None, description="Preferred username")
    email: str | None = Field(default=None, description="Email address")
