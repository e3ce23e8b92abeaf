"""Endpoints for the authenticated GitHub user."""

from fastapi import APIRouter

from repolens.api.deps import Analyzer, GitHubToken
from repolens.api.serializers import to_json

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/repos")
async def list_user_repos(analyzer: Analyzer, token: GitHubToken) -> dict:
    """List the caller's repositories (up to 500), most recently updated first."""
    repos = await analyzer.list_user_repos(token)
    return {"repos": to_json(repos)}
