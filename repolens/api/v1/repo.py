"""
Repository analysis endpoints.

Response bodies use camelCase field names. Anonymous responses carry an
`X-Cache: HIT|MISS` header (plus `X-Cache-Age` on hits); authenticated
responses are never cached and carry no header.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from repolens.api.deps import Analyzer, GitHubToken
from repolens.api.serializers import to_json
from repolens.config import settings

router = APIRouter(prefix="/repo", tags=["repo"])


# --- Request Models ---


class AnalyzeRequest(BaseModel):
    """Request to analyze a repository by URL or `owner/repo` slug."""

    repo_url: str = Field(validation_alias=AliasChoices("repo_url", "repoUrl"))


class StatsRequest(BaseModel):
    """Request for a single statistic of a repository."""

    owner: str
    repo: str
    type: str = "codeFrequency"


# --- Endpoints ---


@router.post("")
async def analyze_repository(
    body: AnalyzeRequest,
    analyzer: Analyzer,
    token: GitHubToken,
) -> JSONResponse:
    """
    Analyze a repository: metadata, languages, recent commits, code frequency
    and contributors in one report.

    Errors are returned as `{"error": ..., "requiresAuth": ...}`.
    """
    outcome = await analyzer.analyze(
        body.repo_url,
        token=token,
        timeout=settings.analysis_timeout_seconds,
    )

    headers: dict[str, str] = {}
    if outcome.cache_status == "HIT":
        headers["X-Cache"] = "HIT"
        headers["X-Cache-Age"] = str(int(outcome.cache_age or 0))
    elif outcome.cache_status == "MISS":
        headers["X-Cache"] = "MISS"

    return JSONResponse(content=to_json(outcome.report), headers=headers)


@router.post("/stats")
async def repository_stats(
    body: StatsRequest,
    analyzer: Analyzer,
    token: GitHubToken,
) -> JSONResponse:
    """
    Fetch one statistic on its own. Only `codeFrequency` is supported.

    Returns `{"data": [...], "computing": bool}`; `computing` means GitHub is
    still preparing the series and the client should ask again later.
    """
    if body.type != "codeFrequency":
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid type"},
        )

    outcome = await analyzer.get_code_frequency(body.owner, body.repo, token=token)

    headers = {"X-Cache": "HIT"} if outcome.cache_status == "HIT" else {}
    return JSONResponse(
        content={
            "data": to_json(outcome.data),
            "computing": outcome.computing,
        },
        headers=headers,
    )
