"""
HTTP Client Manager with Connection Pooling

Provides a shared, reusable HTTP client for calls to the WhatsApp gateway.
The dispatch poller sends many small requests to the same host, so one
pooled client avoids a TCP/TLS handshake per message.

Usage:
    from app.shared.utils.http_client import http_client_manager

    client = http_client_manager.get_client()
    response = await client.post(url, json=data)
"""
import logging
from typing import Optional

import httpx

from app.shared.core.constants import (
    HTTP_TIMEOUT_SECONDS,
    HTTP_CONNECT_TIMEOUT_SECONDS,
    HTTP_MAX_CONNECTIONS,
    HTTP_MAX_KEEPALIVE_CONNECTIONS,
    HTTP_KEEPALIVE_EXPIRY_SECONDS,
)

logger = logging.getLogger(__name__)


class HTTPClientManager:
    """
    Lazily created, process-wide httpx.AsyncClient.

    The client is built on first use and must be closed on shutdown
    (see `shutdown_http_client`). A closed client is rebuilt on the next
    `get_client`, so the poller can close it after each pass.
    """

    def __init__(self):
        self._client: Optional[httpx.AsyncClient] = None

    def _create_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(HTTP_TIMEOUT_SECONDS, connect=HTTP_CONNECT_TIMEOUT_SECONDS)
        limits = httpx.Limits(
            max_connections=HTTP_MAX_CONNECTIONS,
            max_keepalive_connections=HTTP_MAX_KEEPALIVE_CONNECTIONS,
            keepalive_expiry=HTTP_KEEPALIVE_EXPIRY_SECONDS
        )
        return httpx.AsyncClient(timeout=timeout, limits=limits, follow_redirects=True)

    def get_client(self) -> httpx.AsyncClient:
        """Get the shared HTTP client, creating it on first access."""
        if self._client is None or self._client.is_closed:
            self._client = self._create_client()
            logger.info("Gateway HTTP client created")
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release all connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Gateway HTTP client closed")


# Singleton instance
http_client_manager = HTTPClientManager()


async def shutdown_http_client():
    """Call during FastAPI shutdown to properly close connections."""
    await http_client_manager.close()
