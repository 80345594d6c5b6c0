"""Bearer credential extraction."""

from collections.abc import Mapping

from traefik_tower.auth.errors import UnauthorizedError

AUTH_BEARER = "Bearer"


def extract_bearer_token(headers: Mapping[str, str]) -> str:
    """Return the token of an ``Authorization: Bearer <token>`` header.

    The header value must split on single spaces into exactly the scheme
    and one non-empty value.

    Raises:
        UnauthorizedError: Header absent or of any other shape.
    """
    parts = (headers.get("Authorization") or "").split(" ")
    if len(parts) != 2 or parts[0] != AUTH_BEARER or not parts[1]:
        raise UnauthorizedError("Invalid Authorization header")
    return parts[1]
