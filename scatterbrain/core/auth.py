"""Identity token verification.

The HTTP layer turns an ``Authorization: Bearer <token>`` header into a user
id through a TokenVerifier. Two verifiers ship here: a static token table for
self-hosted deployments and tests, and Supabase's ``/auth/v1/user`` endpoint.
"""

import hmac
import logging
from typing import Protocol, runtime_checkable

import httpx

from scatterbrain.core.exceptions import AuthError
from scatterbrain.core.http_client import create_client, supabase_headers

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenVerifier(Protocol):
    """Maps an opaque bearer token to a user id, raising AuthError otherwise."""

    async def verify(self, token: str) -> str: ...


def bearer_token(header: str | None) -> str:
    """Extract the token from an Authorization header value.

    Raises:
        AuthError: If the header is missing or not a Bearer credential.
    """
    if not header:
        raise AuthError("Missing Authorization header")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Authorization header must be 'Bearer <token>'")
    return token.strip()


class StaticTokenVerifier:
    """Verifier backed by a fixed token -> user id table."""

    def __init__(self, tokens: dict[str, str]):
        self._tokens = dict(tokens)

    async def verify(self, token: str) -> str:
        # Compare against every entry so timing does not leak which prefix matched
        user_id = None
        for known, uid in self._tokens.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                user_id = uid
        if user_id is None:
            raise AuthError("Invalid token")
        return user_id


class SupabaseTokenVerifier:
    """Verifier that asks Supabase Auth who owns an access token."""

    def __init__(
        self,
        url: str,
        service_key: str,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._service_key = service_key
        self._client = create_client(
            f"{url.rstrip('/')}/auth/v1",
            headers={"apikey": service_key},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def verify(self, token: str) -> str:
        headers = supabase_headers(self._service_key)
        headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._client.get("/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error("Token verification request failed: %s", e)
            raise AuthError("Unable to verify token", retryable=True)

        if response.status_code != 200:
            raise AuthError("Invalid token")

        user_id = response.json().get("id")
        if not user_id:
            raise AuthError("Invalid token")
        return user_id
