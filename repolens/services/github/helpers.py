"""
GitHub API helper utilities.

Maps raw HTTP responses onto the small error taxonomy in exceptions.py so
callers only ever branch on exception type, never on status codes.
"""

import logging

import httpx

from repolens.services.github.exceptions import (
    GitHubAPIError,
    InvalidCredential,
    RateLimited,
    RepoMoved,
    RepoNotFoundOrPrivate,
    StatsComputing,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


class RateLimitInfo:
    """Rate limit information from GitHub API response."""

    def __init__(self, response: httpx.Response) -> None:
        self.remaining = response.headers.get("X-RateLimit-Remaining")
        self.reset = response.headers.get("X-RateLimit-Reset")

    @property
    def reset_timestamp(self) -> int | None:
        """Get reset timestamp as integer, or None if missing or malformed."""
        if not self.reset:
            return None
        try:
            return int(self.reset)
        except ValueError:
            logger.debug(f"Ignoring malformed X-RateLimit-Reset header: {self.reset!r}")
            return None


def _error_message(response: httpx.Response) -> str:
    """Extract GitHub's `message` field from an error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("message") or "")
    return ""


def mentions_rate_limit(message: str) -> bool:
    """True when an error message reports quota exhaustion."""
    return "rate limit" in message.lower()


def handle_error_response(
    response: httpx.Response,
    resource: str,
    *,
    allow_computing: bool = False,
) -> None:
    """
    Raise the matching GitHubAPIError subclass for a non-success response.

    Args:
        response: The HTTP response from GitHub API
        resource: Resource name for error context (usually "owner/repo")
        allow_computing: Treat 202 as "still computing" (statistics endpoints)
            instead of a success without a body

    Raises:
        StatsComputing: 202 on a statistics endpoint
        RepoNotFoundOrPrivate: 404
        RateLimited: 403, 429, or any body reporting an exhausted quota
        InvalidCredential: 401
        RepoMoved: A redirect the client did not follow
        UpstreamUnavailable: Any other non-2xx status
    """
    status_code = response.status_code

    if status_code == 202 and allow_computing:
        raise StatsComputing(resource)
    if 200 <= status_code < 300:
        return

    rate_info = RateLimitInfo(response)
    message = _error_message(response)

    if status_code in (403, 429) or mentions_rate_limit(message):
        logger.warning(
            f"GitHub rate limit hit for {resource} "
            f"(status {status_code}, remaining {rate_info.remaining})"
        )
        raise RateLimited(
            message or "GitHub API rate limit exceeded",
            status_code,
            rate_limit_reset=rate_info.reset_timestamp,
        )
    if status_code == 404:
        raise RepoNotFoundOrPrivate(resource)
    if status_code == 401:
        raise InvalidCredential()
    if 300 <= status_code < 400:
        # Only reached when the client did not follow the redirect
        location = response.headers.get("Location")
        logger.warning(f"Repository {resource} returned {status_code}: {location!r}")
        raise RepoMoved(resource, location, status_code)

    detail = f": {message}" if message else ""
    raise UpstreamUnavailable(f"GitHub API error: {status_code}{detail}", status_code)


def transport_error(exc: httpx.RequestError, resource: str) -> GitHubAPIError:
    """Wrap an httpx transport failure, keeping the underlying message."""
    return UpstreamUnavailable(f"GitHub request failed for {resource}: {exc!r}")
