"""Exceptions for GitHub service."""


class GitHubAPIError(Exception):
    """Error from GitHub API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        rate_limit_reset: int | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp when rate limit resets
        super().__init__(message)


class RepoNotFoundOrPrivate(GitHubAPIError):
    """GitHub answered 404.

    GitHub uses the same status for a repository that does not exist and for a
    private repository the caller cannot see, so the two cannot be told apart.
    """

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"Repository or resource not found: {resource}", 404)


class RepoMoved(GitHubAPIError):
    """GitHub redirected a renamed or transferred repository.

    The shared client follows redirects, so this only surfaces from a client
    configured not to.
    """

    def __init__(self, resource: str, location: str | None, status_code: int = 301):
        self.resource = resource
        self.location = location
        target = location or "an unknown location"
        super().__init__(f"Repository {resource} was moved to {target}", status_code)


class RateLimited(GitHubAPIError):
    """GitHub refused the request because the caller's quota is exhausted."""

    def __init__(
        self,
        message: str = "GitHub API rate limit exceeded",
        status_code: int | None = 403,
        rate_limit_reset: int | None = None,
    ):
        super().__init__(message, status_code, rate_limit_reset=rate_limit_reset)


class InvalidCredential(GitHubAPIError):
    """The bearer token was rejected (401)."""

    def __init__(self, message: str = "Invalid or expired GitHub token"):
        super().__init__(message, 401)


class StatsComputing(GitHubAPIError):
    """GitHub is still computing a statistics endpoint (202 Accepted).

    Not a failure: the same request will return data once GitHub's background
    job finishes.
    """

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"Statistics are still being computed: {resource}", 202)


class UpstreamUnavailable(GitHubAPIError):
    """Any other non-2xx response, or a transport failure before a response."""
