"""
GitHub service package.

Re-exports the public types and classes.
Usage: `from repolens.services.github import GitHubReadOperations, RepoMetadata`

Module structure:
- read_operations.py: All read-only API operations
- helpers.py: Status-code classification and rate limit parsing
- types.py: Data types and response models
- exceptions.py: Error taxonomy
- http_client.py: Shared connection-pooled client
- constants.py: API constants and language colors
"""

from repolens.services.github.constants import DEFAULT_LANGUAGE_COLOR, GITHUB_LANGUAGE_COLORS
from repolens.services.github.exceptions import (
    GitHubAPIError,
    InvalidCredential,
    RateLimited,
    RepoMoved,
    RepoNotFoundOrPrivate,
    StatsComputing,
    UpstreamUnavailable,
)
from repolens.services.github.helpers import RateLimitInfo, handle_error_response
from repolens.services.github.http_client import (
    close_github_client,
    create_github_client,
    get_github_client,
)
from repolens.services.github.read_operations import GitHubReadOperations
from repolens.services.github.types import (
    CommitDetail,
    CommitSummary,
    ContributorSummary,
    RepoMetadata,
    UserRepo,
    WeeklyBucket,
)

__all__ = [
    # Client
    "GitHubReadOperations",
    # HTTP client lifecycle
    "get_github_client",
    "close_github_client",
    "create_github_client",
    # Utilities
    "handle_error_response",
    "RateLimitInfo",
    # Exceptions
    "GitHubAPIError",
    "InvalidCredential",
    "RateLimited",
    "RepoMoved",
    "RepoNotFoundOrPrivate",
    "StatsComputing",
    "UpstreamUnavailable",
    # Types
    "CommitDetail",
    "CommitSummary",
    "ContributorSummary",
    "RepoMetadata",
    "UserRepo",
    "WeeklyBucket",
    # Constants
    "DEFAULT_LANGUAGE_COLOR",
    "GITHUB_LANGUAGE_COLORS",
]
