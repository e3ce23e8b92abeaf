"""
Shared HTTP client for GitHub API operations.

Provides a singleton AsyncClient with connection pooling for all GitHub API calls.
A single analysis issues dozens of requests (one per sampled commit), so reusing
connections avoids an SSL handshake per request.
"""

import logging

import httpx

from repolens.config import settings

logger = logging.getLogger(__name__)

# Module-level singleton client
_client: httpx.AsyncClient | None = None


def create_github_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    Build a client configured for GitHub API calls.

    Redirects are followed: GitHub answers 301 for renamed or transferred
    repositories and serves the new location transparently.

    Args:
        transport: Optional transport override (tests use httpx.MockTransport)
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.github_request_timeout, connect=5.0),
        limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        http2=True,
        follow_redirects=True,
        transport=transport,
    )


def get_github_client() -> httpx.AsyncClient:
    """
    Get or create the shared HTTP client for GitHub API calls.

    Auth headers are passed per-request, not stored on the client, because
    anonymous and authenticated callers share the same connection pool.

    Returns:
        Shared httpx.AsyncClient configured for GitHub API
    """
    global _client
    if _client is None or _client.is_closed:
        _client = create_github_client()
        logger.debug("Created new GitHub HTTP client with connection pooling")
    return _client


async def close_github_client() -> None:
    """
    Close the shared HTTP client.

    Call on app shutdown for graceful termination.
    """
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
        _client = None
        logger.debug("Closed GitHub HTTP client")
