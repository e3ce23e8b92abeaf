"""
GitHub API read operations.

Provides the read-only calls an analysis needs:
- Repository metadata and languages
- Commit list and per-commit detail
- Code frequency and contributor statistics (computed asynchronously by GitHub)
- Plain contributor list (always synchronous)
- The authenticated user's repositories
"""

import logging
from typing import Any

import httpx

from repolens.config import settings
from repolens.services.github.constants import MAX_PER_PAGE
from repolens.services.github.exceptions import InvalidCredential
from repolens.services.github.helpers import handle_error_response, transport_error
from repolens.services.github.http_client import get_github_client
from repolens.services.github.types import (
    CommitDetail,
    CommitSummary,
    ContributorSummary,
    RepoMetadata,
    UserRepo,
    WeeklyBucket,
)

logger = logging.getLogger(__name__)


class GitHubReadOperations:
    """
    Read-only operations for GitHub API.

    The token is optional: anonymous calls work for public repositories, only
    with GitHub's lower unauthenticated rate limit.

    Uses a shared HTTP client singleton for connection pooling.
    """

    API_VERSION = settings.github_api_version

    def __init__(self, token: str | None = None, base_url: str | None = None):
        self.token = token
        self.base_url = (base_url or settings.github_api_url).rstrip("/")
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    async def _get(
        self,
        path: str,
        resource: str,
        params: dict[str, str | int] | None = None,
        timeout: float | None = None,
        allow_computing: bool = False,
    ) -> httpx.Response:
        """Issue a GET and classify any failure into the GitHub error taxonomy."""
        client = get_github_client()
        kwargs: dict[str, Any] = {"headers": self._headers}
        if params:
            kwargs["params"] = params
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await client.get(f"{self.base_url}{path}", **kwargs)
        except httpx.RequestError as e:
            raise transport_error(e, resource) from e

        handle_error_response(response, resource, allow_computing=allow_computing)
        return response

    # ─────────────────────────────────────────────────────────────
    # Repository
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _normalize_metadata(data: dict[str, Any]) -> RepoMetadata:
        """Convert GitHub API response to RepoMetadata dataclass."""
        return RepoMetadata(
            name=data["name"],
            full_name=data["full_name"],
            description=data.get("description"),
            url=data["html_url"],
            stars=data.get("stargazers_count", 0),
            forks=data.get("forks_count", 0),
            watchers=data.get("watchers_count", 0),
            open_issues=data.get("open_issues_count", 0),
            default_branch=data.get("default_branch", "main"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            pushed_at=data.get("pushed_at"),
            size=data.get("size", 0),
            is_private=data.get("private", False),
        )

    async def get_repo_metadata(self, owner: str, repo: str) -> RepoMetadata:
        """
        Fetch repository metadata.

        Args:
            owner: Repository owner (username or org)
            repo: Repository name

        Returns:
            RepoMetadata snapshot

        Raises:
            RepoNotFoundOrPrivate: Repository missing, or private and invisible to the caller
        """
        response = await self._get(f"/repos/{owner}/{repo}", f"{owner}/{repo}")
        return self._normalize_metadata(response.json())

    async def get_repo_languages(self, owner: str, repo: str) -> dict[str, int]:
        """
        Fetch raw language byte counts for a repository.

        Returns:
            Mapping of language name to bytes of code
        """
        response = await self._get(
            f"/repos/{owner}/{repo}/languages", f"{owner}/{repo}", timeout=15.0
        )
        data: dict[str, int] = response.json() or {}
        return {name: int(byte_count) for name, byte_count in data.items()}

    # ─────────────────────────────────────────────────────────────
    # Commits
    # ─────────────────────────────────────────────────────────────

    async def list_commits(
        self,
        owner: str,
        repo: str,
        per_page: int = 50,
    ) -> list[CommitSummary]:
        """
        Fetch the most recent commits on the default branch.

        Args:
            owner: Repository owner
            repo: Repository name
            per_page: Number of commits to fetch (max 100)

        Returns:
            List of CommitSummary, newest first
        """
        response = await self._get(
            f"/repos/{owner}/{repo}/commits",
            f"{owner}/{repo}",
            params={"per_page": min(per_page, MAX_PER_PAGE)},
        )

        commits: list[dict[str, Any]] = response.json() or []
        summaries = []
        for commit in commits:
            git_commit = commit.get("commit") or {}
            git_author = git_commit.get("author") or {}
            author = commit.get("author") or {}
            summaries.append(
                CommitSummary(
                    sha=commit["sha"],
                    message=(git_commit.get("message") or "").split("\n")[0],
                    author=git_author.get("name") or "Unknown",
                    author_avatar=author.get("avatar_url") or "",
                    date=git_author.get("date") or "",
                )
            )
        return summaries

    async def get_commit_detail(
        self,
        owner: str,
        repo: str,
        sha: str,
        timeout: float | None = None,
    ) -> CommitDetail:
        """
        Fetch line statistics for a single commit.

        Args:
            owner: Repository owner
            repo: Repository name
            sha: Commit SHA
            timeout: Request timeout in seconds (default: settings.commit_detail_timeout)

        Returns:
            CommitDetail with additions, deletions and number of files touched
        """
        response = await self._get(
            f"/repos/{owner}/{repo}/commits/{sha}",
            f"{owner}/{repo}@{sha[:7]}",
            timeout=timeout if timeout is not None else settings.commit_detail_timeout,
        )

        data = response.json()
        stats = data.get("stats") or {}
        return CommitDetail(
            additions=stats.get("additions", 0),
            deletions=stats.get("deletions", 0),
            files=len(data.get("files") or []),
        )

    # ─────────────────────────────────────────────────────────────
    # Statistics (computed asynchronously by GitHub)
    # ─────────────────────────────────────────────────────────────

    async def get_code_frequency(self, owner: str, repo: str) -> list[WeeklyBucket]:
        """
        Fetch weekly additions/deletions for the whole repository.

        Raises:
            StatsComputing: GitHub answered 202 and is still computing the series
        """
        response = await self._get(
            f"/repos/{owner}/{repo}/stats/code_frequency",
            f"{owner}/{repo}",
            allow_computing=True,
        )

        data = response.json() if response.content else []
        if not isinstance(data, list):
            return []

        # Rows are [week, additions, deletions]; deletions arrive negative
        return [
            WeeklyBucket(week=row[0], additions=row[1], deletions=abs(row[2]))
            for row in data
            if len(row) >= 3
        ]

    async def get_contributor_stats(self, owner: str, repo: str) -> list[ContributorSummary]:
        """
        Fetch per-contributor commit totals with weekly breakdowns.

        Raises:
            StatsComputing: GitHub answered 202 and is still computing the stats
        """
        response = await self._get(
            f"/repos/{owner}/{repo}/stats/contributors",
            f"{owner}/{repo}",
            allow_computing=True,
        )

        data = response.json() if response.content else []
        if not isinstance(data, list):
            return []

        contributors = []
        for entry in data:
            author = entry.get("author") or {}
            weeks = tuple(
                WeeklyBucket(
                    week=week.get("w") or 0,
                    additions=week.get("a") or 0,
                    deletions=week.get("d") or 0,
                    commits=week.get("c") or 0,
                )
                for week in entry.get("weeks") or []
            )
            contributors.append(
                ContributorSummary(
                    author=author.get("login") or "Unknown",
                    avatar=author.get("avatar_url") or "",
                    total_commits=entry.get("total", 0),
                    weeks=weeks,
                )
            )
        return contributors

    async def list_contributors(
        self,
        owner: str,
        repo: str,
        limit: int = 100,
    ) -> list[ContributorSummary]:
        """
        Fetch the plain contributor list (lifetime contribution counts only).

        Always answered synchronously, so it is the fallback when contributor
        statistics never finish computing.

        Returns:
            List of ContributorSummary with empty weekly breakdowns
        """
        response = await self._get(
            f"/repos/{owner}/{repo}/contributors",
            f"{owner}/{repo}",
            params={"per_page": min(limit, MAX_PER_PAGE), "anon": "false"},
            timeout=15.0,
        )

        # Empty repositories answer 204
        if response.status_code == 204 or not response.content:
            return []

        data: list[dict[str, Any]] = response.json()
        return [
            ContributorSummary(
                author=contrib.get("login") or "Unknown",
                avatar=contrib.get("avatar_url") or "",
                total_commits=contrib.get("contributions", 0),
            )
            for contrib in data[:limit]
        ]

    # ─────────────────────────────────────────────────────────────
    # Authenticated user
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _normalize_user_repo(data: dict[str, Any]) -> UserRepo:
        return UserRepo(
            id=data["id"],
            name=data["name"],
            full_name=data["full_name"],
            description=data.get("description"),
            url=data["html_url"],
            stars=data.get("stargazers_count", 0),
            is_private=data.get("private", False),
            language=data.get("language"),
            updated_at=data.get("updated_at") or "",
        )

    async def get_user_repos_page(
        self,
        page: int = 1,
        per_page: int = MAX_PER_PAGE,
    ) -> list[UserRepo]:
        """Fetch one page of the authenticated user's repositories, most recently updated first."""
        if not self.is_authenticated:
            raise InvalidCredential("A GitHub token is required to list repositories")

        response = await self._get(
            "/user/repos",
            "user/repos",
            params={
                "sort": "updated",
                "direction": "desc",
                "per_page": min(per_page, MAX_PER_PAGE),
                "page": page,
            },
        )
        return [self._normalize_user_repo(r) for r in response.json() or []]

    async def list_user_repos(
        self,
        max_pages: int = 5,
        per_page: int = MAX_PER_PAGE,
    ) -> list[UserRepo]:
        """
        Fetch the authenticated user's repositories across pages.

        Stops at the first short page or after max_pages pages.

        Args:
            max_pages: Page cap (5 pages x 100 = 500 repos)
            per_page: Page size (max 100)

        Returns:
            List of UserRepo, most recently updated first
        """
        repos: list[UserRepo] = []
        for page in range(1, max_pages + 1):
            batch = await self.get_user_repos_page(page=page, per_page=per_page)
            repos.extend(batch)
            if len(batch) < min(per_page, MAX_PER_PAGE):
                break
        return repos
