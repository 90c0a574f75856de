"""Shared HTTP client manager for calendar fetches.

Keeps one pooled ``httpx.AsyncClient`` per client id so that repeated polls of
the same calendar servers reuse connections instead of opening a new client
per request.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Global state for shared HTTP clients
_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0

_DEFAULT_LIMITS = httpx.Limits(
    max_connections=8,
    max_keepalive_connections=4,
)

# Browser-like headers; some hosted calendar servers reject obvious bot user agents
DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 roompanel/0.1",
    "Accept": "text/calendar, application/xml, text/xml, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


def build_timeout(seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS) -> httpx.Timeout:
    """Build an httpx timeout where every phase is bounded by ``seconds``."""
    return httpx.Timeout(seconds)


async def get_shared_client(
    client_id: str = "default",
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        timeout: Custom timeout configuration (defaults to 10s for every phase)

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        if client_id not in _shared_clients or _shared_clients[client_id].is_closed:
            try:
                _shared_clients[client_id] = httpx.AsyncClient(
                    limits=_DEFAULT_LIMITS,
                    timeout=timeout or build_timeout(),
                    follow_redirects=True,
                    verify=True,
                    headers=DEFAULT_HEADERS,
                )
                logger.info("Created shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

        return _shared_clients[client_id]


async def close_all_clients() -> None:
    """Close all shared HTTP clients.

    Called during application shutdown to release pooled connections.
    """
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        logger.debug("All shared HTTP clients closed")
