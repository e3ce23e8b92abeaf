"""Shared API dependencies: the process-wide analyzer and the optional GitHub token."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from repolens.config import settings
from repolens.services.analysis import RepoAnalyzer

# auto_error=False: anonymous requests are allowed, just rate limited harder upstream
security = HTTPBearer(auto_error=False)

# Module-level singleton: the report cache must outlive individual requests
_analyzer: RepoAnalyzer | None = None


def get_analyzer() -> RepoAnalyzer:
    """Get or create the process-wide RepoAnalyzer."""
    global _analyzer
    if _analyzer is None:
        _analyzer = RepoAnalyzer.from_settings(settings)
    return _analyzer


def get_github_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Return the caller's GitHub token from `Authorization: Bearer`, if any."""
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


Analyzer = Annotated[RepoAnalyzer, Depends(get_analyzer)]
GitHubToken = Annotated[str | None, Depends(get_github_token)]
