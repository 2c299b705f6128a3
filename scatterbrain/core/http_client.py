"""HTTP client factory for the hosted collaborators (record store, auth).

Builds httpx.AsyncClient instances with JSON headers and bounded timeouts.
Tests pass an httpx.MockTransport through ``transport``.
"""

import httpx

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 15.0
DEFAULT_WRITE_TIMEOUT = 10.0
DEFAULT_POOL_TIMEOUT = 5.0

USER_AGENT = "scatterbrain/0.1"


def get_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=DEFAULT_CONNECT_TIMEOUT,
        read=DEFAULT_READ_TIMEOUT,
        write=DEFAULT_WRITE_TIMEOUT,
        pool=DEFAULT_POOL_TIMEOUT,
    )


def supabase_headers(service_key: str) -> dict[str, str]:
    """Headers authenticating as the Supabase service role."""
    return {
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
        "apikey": service_key,
        "Authorization": f"Bearer {service_key}",
    }


def create_client(
    base_url: str,
    *,
    headers: dict[str, str] | None = None,
    timeout: httpx.Timeout | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an async HTTP client rooted at base_url.

    Example:
        async with create_client("https://xyz.supabase.co/rest/v1") as client:
            response = await client.get("/thoughts", params={"id": "eq.1"})
    """
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        headers=headers or {"User-Agent": USER_AGENT},
        timeout=timeout or get_timeout(),
        transport=transport,
    )
