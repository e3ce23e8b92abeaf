"""
Errors that abort an analysis.

Only three things can fail a whole analysis: a malformed identifier, the
initial metadata fetch, and the caller's deadline. Everything after the
metadata fetch degrades to empty sections instead of raising.
"""

from typing import Any


class AnalysisError(Exception):
    """Base class for fatal analysis errors.

    `requires_auth` tells the caller that retrying with a GitHub token may help.
    """

    requires_auth: bool = False

    def __init__(self, message: str, requires_auth: bool | None = None):
        self.message = message
        if requires_auth is not None:
            self.requires_auth = requires_auth
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        """Serialize as the `{error, requiresAuth}` shape returned to callers."""
        return {"error": self.message, "requiresAuth": self.requires_auth}


class InvalidRepoIdentifier(AnalysisError):
    """Input is neither `owner/repo` nor a GitHub repository URL."""

    def __init__(self, message: str = "Invalid repository URL format"):
        super().__init__(message)


class PrivateRepository(AnalysisError):
    """Metadata says the repository is private and no token was supplied."""

    requires_auth = True

    def __init__(self) -> None:
        super().__init__(
            "This is a private repository. Please sign in with GitHub to access it."
        )


class RepoNotFound(AnalysisError):
    """GitHub answered 404: missing, or private and invisible to the caller."""

    requires_auth = True

    def __init__(self) -> None:
        super().__init__(
            "Repository not found. It may be private - please sign in with GitHub "
            "to access private repositories."
        )


class RateLimitExceeded(AnalysisError):
    requires_auth = True

    def __init__(self, rate_limit_reset: int | None = None) -> None:
        self.rate_limit_reset = rate_limit_reset
        super().__init__(
            "Rate limit exceeded. Please sign in with GitHub for higher rate limits."
        )


class CredentialRejected(AnalysisError):
    requires_auth = True

    def __init__(self) -> None:
        super().__init__("Your GitHub token is invalid or expired. Please sign in again.")


class UpstreamFailure(AnalysisError):
    """GitHub could not be reached or answered with an unexpected error."""


class AnalysisTimeout(AnalysisError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Repository analysis did not finish within {timeout:g} seconds")
