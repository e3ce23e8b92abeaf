"""Unit tests for RepoAnalyzer.

Uses an in-memory GitHub client that records every call, so tests can assert
exactly which upstream requests an analysis made.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from unittest.mock import patch

import httpx
import pytest

from repolens.services.analysis.aggregator import (
    RepoAnalyzer,
    estimate_total_lines,
    language_breakdown,
    translate_upstream_error,
)
from repolens.services.analysis.cache import ResultCache
from repolens.services.analysis.errors import (
    AnalysisError,
    AnalysisTimeout,
    CredentialRejected,
    InvalidRepoIdentifier,
    PrivateRepository,
    RateLimitExceeded,
    RepoNotFound,
    UpstreamFailure,
)
from repolens.services.analysis.polling import RetryPolicy, fixed_backoff, linear_backoff
from repolens.services.analysis.sampler import CommitDetailSampler
from repolens.services.github.http_client import create_github_client
from repolens.services.github.exceptions import (
    InvalidCredential,
    RateLimited,
    RepoMoved,
    RepoNotFoundOrPrivate,
    StatsComputing,
    UpstreamUnavailable,
)
from repolens.services.github.types import (
    CommitDetail,
    CommitSummary,
    ContributorSummary,
    RepoMetadata,
    UserRepo,
    WeeklyBucket,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

TOKEN = "ghp_test_token_12345"
WEEK = WeeklyBucket(week=1700000000, additions=100, deletions=20)


def _metadata(is_private: bool = False) -> RepoMetadata:
    return RepoMetadata(
        name="my-repo",
        full_name="owner/my-repo",
        description="A test repo",
        url="https://github.com/owner/my-repo",
        stars=42,
        forks=5,
        watchers=42,
        open_issues=3,
        default_branch="main",
        created_at="2025-06-01T00:00:00Z",
        updated_at="2026-01-15T00:00:00Z",
        pushed_at="2026-01-14T00:00:00Z",
        size=2048,
        is_private=is_private,
    )


def _commits(n: int) -> list[CommitSummary]:
    return [
        CommitSummary(sha=f"{i:040x}", message=f"commit {i}", author="dev", author_avatar="", date="")
        for i in range(n)
    ]


class FakeGitHub:
    """Scriptable stand-in for GitHubReadOperations.

    Each attribute below is either the value to return or an exception to raise.
    `code_frequency` and `contributor_stats` may be lists consumed one per call.
    """

    def __init__(self, token: str | None = None) -> None:
        self.token = token
        self.calls: Counter[str] = Counter()
        self.metadata: object = _metadata()
        self.languages: object = {"Python": 750, "Shell": 250}
        self.commits: object = _commits(3)
        self.detail: object = CommitDetail(additions=10, deletions=4, files=2)
        self.code_frequency: object = [WEEK]
        self.contributor_stats: object = [
            ContributorSummary(author="a", avatar="", total_commits=2, weeks=(WEEK,)),
            ContributorSummary(author="b", avatar="", total_commits=9, weeks=(WEEK,)),
        ]
        self.contributors: object = [
            ContributorSummary(author="x", avatar="", total_commits=1),
            ContributorSummary(author="y", avatar="", total_commits=7),
        ]
        self.user_repos: object = []
        self.delay = 0.0

    def _answer(self, name: str, value: object) -> object:
        self.calls[name] += 1
        if isinstance(value, list) and value and isinstance(value[0], (list, BaseException)):
            value = value.pop(0)
        if isinstance(value, BaseException):
            raise value
        return value

    async def get_repo_metadata(self, owner, repo):
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._answer("metadata", self.metadata)

    async def get_repo_languages(self, owner, repo):
        return self._answer("languages", self.languages)

    async def list_commits(self, owner, repo, per_page=50):
        return self._answer("commits", self.commits)

    async def get_commit_detail(self, owner, repo, sha, timeout=None):
        return self._answer("detail", self.detail)

    async def get_code_frequency(self, owner, repo):
        return self._answer("code_frequency", self.code_frequency)

    async def get_contributor_stats(self, owner, repo):
        return self._answer("contributor_stats", self.contributor_stats)

    async def list_contributors(self, owner, repo, limit=100):
        return self._answer("contributors", self.contributors)

    async def list_user_repos(self, max_pages=5, per_page=100):
        return self._answer("user_repos", self.user_repos)


class Factory:
    """client_factory that hands out one shared FakeGitHub and records tokens."""

    def __init__(self, github: FakeGitHub) -> None:
        self.github = github
        self.tokens: list[str | None] = []

    def __call__(self, token: str | None) -> FakeGitHub:
        self.tokens.append(token)
        return self.github


async def _no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def analyzer(github: FakeGitHub) -> RepoAnalyzer:
    return RepoAnalyzer(
        report_cache=ResultCache(ttl=600, capacity=10),
        stats_cache=ResultCache(ttl=600, capacity=10),
        client_factory=Factory(github),
        sampler=CommitDetailSampler(sample_size=50, max_concurrency=10),
        code_frequency_policy=RetryPolicy(3, fixed_backoff(2.0)),
        contributor_policy=RetryPolicy(5, linear_backoff(1.0)),
        sleep=_no_sleep,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Derived metrics
# ═══════════════════════════════════════════════════════════════════════════


class TestLanguageBreakdown:
    def test_percentages_sum_to_100_largest_first(self):
        shares = language_breakdown({"Shell": 1, "Python": 2})

        assert [s.name for s in shares] == ["Python", "Shell"]
        assert sum(s.percentage for s in shares) == pytest.approx(100.0)
        assert shares[0].percentage == pytest.approx(200 / 3)

    def test_known_and_default_colors(self):
        shares = {s.name: s for s in language_breakdown({"Python": 1, "Klingon": 1})}

        assert shares["Python"].color.startswith("#")
        assert shares["Klingon"].color == "#8b949e"

    def test_zero_bytes(self):
        shares = language_breakdown({"Python": 0})

        assert shares[0].percentage == 0.0

    def test_empty(self):
        assert language_breakdown({}) == ()


class TestEstimateTotalLines:
    def test_net_growth(self):
        assert estimate_total_lines(100, 30) == 70

    def test_deletion_heavy_uses_additions(self):
        assert estimate_total_lines(10, 50) == 10

    def test_nothing(self):
        assert estimate_total_lines(0, 0) == 0


class TestTranslateUpstreamError:
    @pytest.mark.parametrize(
        ("error", "expected", "requires_auth"),
        [
            (RepoNotFoundOrPrivate("o/r"), RepoNotFound, True),
            (RateLimited(rate_limit_reset=1700000000), RateLimitExceeded, True),
            (InvalidCredential(), CredentialRejected, True),
            (UpstreamUnavailable("GitHub API error: 500", 500), UpstreamFailure, False),
            (RepoMoved("o/r", "https://api.github.com/repositories/42"), UpstreamFailure, False),
        ],
    )
    def test_mapping(self, error, expected, requires_auth):
        translated = translate_upstream_error(error)

        assert isinstance(translated, expected)
        assert translated.requires_auth is requires_auth

    def test_rate_limit_reset_kept(self):
        translated = translate_upstream_error(RateLimited(rate_limit_reset=1700000000))

        assert translated.rate_limit_reset == 1700000000


# ═══════════════════════════════════════════════════════════════════════════
# analyze
# ═══════════════════════════════════════════════════════════════════════════


class TestAnalyze:
    @pytest.mark.anyio
    async def test_full_report(self, analyzer, github):
        outcome = await analyzer.analyze("https://github.com/owner/my-repo")
        report = outcome.report

        assert outcome.cache_status == "MISS"
        assert report.repo.full_name == "owner/my-repo"
        assert dict(report.languages) == {"Python": 750, "Shell": 250}
        assert [s.percentage for s in report.language_percentages] == [75.0, 25.0]
        assert len(report.commits) == 3
        assert all(c.detail == CommitDetail(10, 4, 2) for c in report.commits)
        assert report.total_additions == 30
        assert report.total_deletions == 12
        assert report.total_lines == 18
        assert report.code_frequency == (WEEK,)
        assert report.code_frequency_computing is False
        assert [c.author for c in report.contributors] == ["b", "a"]
        assert report.contributors_fallback is False
        assert report.is_private is False
        assert github.calls["detail"] == 3
        assert github.calls["contributors"] == 0

    @pytest.mark.anyio
    async def test_invalid_identifier_makes_no_calls(self, analyzer, github):
        with pytest.raises(InvalidRepoIdentifier):
            await analyzer.analyze("not a repo")

        assert sum(github.calls.values()) == 0

    @pytest.mark.anyio
    async def test_private_repo_without_token_stops_after_metadata(self, analyzer, github):
        github.metadata = _metadata(is_private=True)

        with pytest.raises(PrivateRepository) as exc_info:
            await analyzer.analyze("owner/my-repo")

        assert exc_info.value.requires_auth is True
        assert github.calls == Counter({"metadata": 1})
        assert len(analyzer.report_cache) == 0

    @pytest.mark.anyio
    async def test_private_repo_with_token(self, analyzer, github):
        github.metadata = _metadata(is_private=True)

        outcome = await analyzer.analyze("owner/my-repo", token=TOKEN)

        assert outcome.report.is_private is True
        assert outcome.cache_status == "BYPASS"
        assert analyzer.client_factory.tokens == [TOKEN]

    @pytest.mark.anyio
    async def test_second_anonymous_call_served_from_cache(self, analyzer, github):
        first = await analyzer.analyze("owner/my-repo")
        calls_after_first = sum(github.calls.values())

        second = await analyzer.analyze("https://github.com/OWNER/My-Repo.git")

        assert first.cache_status == "MISS"
        assert second.cache_status == "HIT"
        assert second.cache_age is not None
        assert second.report == first.report
        assert sum(github.calls.values()) == calls_after_first

    @pytest.mark.anyio
    async def test_cached_report_cannot_be_mutated_by_a_caller(self, analyzer):
        first = await analyzer.analyze("owner/my-repo")

        with pytest.raises(TypeError):
            first.report.languages["Injected"] = 1

        second = await analyzer.analyze("owner/my-repo")

        assert second.cache_status == "HIT"
        assert dict(second.report.languages) == {"Python": 750, "Shell": 250}

    @pytest.mark.anyio
    async def test_report_does_not_alias_upstream_languages(self, analyzer, github):
        outcome = await analyzer.analyze("owner/my-repo")

        github.languages["Injected"] = 1

        assert "Injected" not in outcome.report.languages

    @pytest.mark.anyio
    async def test_authenticated_calls_never_cached(self, analyzer, github):
        await analyzer.analyze("owner/my-repo", token=TOKEN)
        outcome = await analyzer.analyze("owner/my-repo", token=TOKEN)

        assert outcome.cache_status == "BYPASS"
        assert github.calls["metadata"] == 2
        assert len(analyzer.report_cache) == 0

    @pytest.mark.anyio
    async def test_authenticated_call_ignores_anonymous_cache(self, analyzer, github):
        await analyzer.analyze("owner/my-repo")
        outcome = await analyzer.analyze("owner/my-repo", token=TOKEN)

        assert outcome.cache_status == "BYPASS"
        assert github.calls["metadata"] == 2

    @pytest.mark.anyio
    async def test_code_frequency_ready_on_third_attempt(self, analyzer, github):
        github.code_frequency = [StatsComputing("o/r"), StatsComputing("o/r"), [WEEK]]

        outcome = await analyzer.analyze("owner/my-repo")

        assert github.calls["code_frequency"] == 3
        assert outcome.report.code_frequency == (WEEK,)
        assert outcome.report.code_frequency_computing is False

    @pytest.mark.anyio
    async def test_code_frequency_still_computing(self, analyzer, github):
        github.code_frequency = StatsComputing("o/r")

        outcome = await analyzer.analyze("owner/my-repo")

        assert github.calls["code_frequency"] == 3
        assert outcome.report.code_frequency == ()
        assert outcome.report.code_frequency_computing is True

    @pytest.mark.anyio
    async def test_contributor_fallback(self, analyzer, github):
        github.contributor_stats = StatsComputing("o/r")

        outcome = await analyzer.analyze("owner/my-repo")

        assert github.calls["contributor_stats"] == 5
        assert github.calls["contributors"] == 1
        assert outcome.report.contributors_fallback is True
        assert [c.author for c in outcome.report.contributors] == ["y", "x"]

    @pytest.mark.anyio
    async def test_failed_sections_are_empty(self, analyzer, github):
        github.languages = UpstreamUnavailable("boom", 500)
        github.commits = RateLimited()
        github.code_frequency = UpstreamUnavailable("boom", 500)
        github.contributor_stats = UpstreamUnavailable("boom", 500)

        report = (await analyzer.analyze("owner/my-repo")).report

        assert dict(report.languages) == {}
        assert report.language_percentages == ()
        assert report.commits == ()
        assert report.code_frequency == ()
        assert report.contributors == ()
        assert report.total_lines == 0

    @pytest.mark.anyio
    async def test_failed_commit_details_counted_as_zero(self, analyzer, github):
        github.detail = UpstreamUnavailable("timeout")

        report = (await analyzer.analyze("owner/my-repo")).report

        assert len(report.commits) == 3
        assert report.total_additions == 0
        assert report.total_lines == 0

    @pytest.mark.anyio
    async def test_commits_beyond_sample_have_no_detail(self, github):
        github.commits = _commits(4)
        analyzer = RepoAnalyzer(
            client_factory=Factory(github),
            sampler=CommitDetailSampler(sample_size=2),
            sleep=_no_sleep,
        )

        report = (await analyzer.analyze("owner/my-repo")).report

        assert [c.detail is not None for c in report.commits] == [True, True, False, False]
        assert github.calls["detail"] == 2
        assert report.total_additions == 20

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (RepoNotFoundOrPrivate("owner/my-repo"), RepoNotFound),
            (RateLimited(), RateLimitExceeded),
            (InvalidCredential(), CredentialRejected),
            (UpstreamUnavailable("GitHub API error: 503", 503), UpstreamFailure),
        ],
    )
    async def test_metadata_failure_is_fatal(self, analyzer, github, error, expected):
        github.metadata = error

        with pytest.raises(expected):
            await analyzer.analyze("owner/my-repo")

        assert github.calls == Counter({"metadata": 1})

    @pytest.mark.anyio
    async def test_timeout(self, analyzer, github):
        github.delay = 1.0

        with pytest.raises(AnalysisTimeout) as exc_info:
            await analyzer.analyze("owner/my-repo", timeout=0.01)

        assert "0.01" in exc_info.value.message
        assert len(analyzer.report_cache) == 0


# ═══════════════════════════════════════════════════════════════════════════
# get_code_frequency
# ═══════════════════════════════════════════════════════════════════════════


class TestGetCodeFrequency:
    @pytest.mark.anyio
    async def test_anonymous_result_cached(self, analyzer, github):
        first = await analyzer.get_code_frequency("owner", "my-repo")
        second = await analyzer.get_code_frequency("Owner", "My-Repo")

        assert first.cache_status == "MISS"
        assert second.cache_status == "HIT"
        assert second.data == (WEEK,)
        assert github.calls["code_frequency"] == 1

    @pytest.mark.anyio
    async def test_computing_result_not_cached(self, analyzer, github):
        github.code_frequency = [
            StatsComputing("o/r"),
            StatsComputing("o/r"),
            StatsComputing("o/r"),
            [WEEK],
        ]

        first = await analyzer.get_code_frequency("owner", "my-repo")
        second = await analyzer.get_code_frequency("owner", "my-repo")

        assert first.computing is True
        assert first.data == ()
        assert second.computing is False
        assert second.data == (WEEK,)
        assert second.cache_status == "MISS"

    @pytest.mark.anyio
    async def test_authenticated_bypasses_cache(self, analyzer, github):
        await analyzer.get_code_frequency("owner", "my-repo", token=TOKEN)
        outcome = await analyzer.get_code_frequency("owner", "my-repo", token=TOKEN)

        assert outcome.cache_status == "BYPASS"
        assert github.calls["code_frequency"] == 2
        assert len(analyzer.stats_cache) == 0

    @pytest.mark.anyio
    async def test_upstream_error_translated(self, analyzer, github):
        github.code_frequency = RepoNotFoundOrPrivate("owner/missing")

        with pytest.raises(RepoNotFound):
            await analyzer.get_code_frequency("owner", "missing")


# ═══════════════════════════════════════════════════════════════════════════
# list_user_repos / cache management
# ═══════════════════════════════════════════════════════════════════════════


class TestUserReposAndCaches:
    @pytest.mark.anyio
    async def test_user_repos_require_token(self, analyzer, github):
        with pytest.raises(AnalysisError) as exc_info:
            await analyzer.list_user_repos(None)

        assert exc_info.value.requires_auth is True
        assert github.calls["user_repos"] == 0

    @pytest.mark.anyio
    async def test_user_repos_listed(self, analyzer, github):
        repo = UserRepo(
            id=1,
            name="r",
            full_name="me/r",
            description=None,
            url="https://github.com/me/r",
            stars=0,
            is_private=True,
            language=None,
            updated_at="2026-01-15T00:00:00Z",
        )
        github.user_repos = [repo]

        assert await analyzer.list_user_repos(TOKEN) == [repo]

    @pytest.mark.anyio
    async def test_user_repos_rejected_token(self, analyzer, github):
        github.user_repos = InvalidCredential()

        with pytest.raises(CredentialRejected):
            await analyzer.list_user_repos(TOKEN)

    @pytest.mark.anyio
    async def test_cache_stats_and_clear(self, analyzer):
        await analyzer.analyze("owner/my-repo")

        assert analyzer.cache_stats()["reports"]["size"] == 1
        analyzer.clear_caches()
        assert analyzer.cache_stats()["reports"]["size"] == 0


# ═══════════════════════════════════════════════════════════════════════════
# Renamed repositories (real client over a mock transport)
# ═══════════════════════════════════════════════════════════════════════════


def _renamed_repo_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/repos/old-owner/widget":
        return httpx.Response(301, headers={"Location": "https://api.github.com/repositories/42"})
    if request.url.path == "/repositories/42":
        return httpx.Response(
            200,
            json={
                "name": "widget",
                "full_name": "new-owner/widget",
                "html_url": "https://github.com/new-owner/widget",
                "private": False,
            },
        )
    return httpx.Response(404, json={"message": "Not Found"})


class TestRenamedRepository:
    @pytest.mark.anyio
    async def test_analysis_follows_redirect(self):
        client = create_github_client(transport=httpx.MockTransport(_renamed_repo_handler))
        analyzer = RepoAnalyzer(sleep=_no_sleep)
        try:
            with patch(
                "repolens.services.github.read_operations.get_github_client",
                return_value=client,
            ):
                outcome = await analyzer.analyze("old-owner/widget")
        finally:
            await client.aclose()

        assert outcome.cache_status == "MISS"
        assert outcome.report.repo.full_name == "new-owner/widget"
        # Sections answered 404 and degrade to empty
        assert outcome.report.commits == ()
        assert outcome.report.contributors == ()

    @pytest.mark.anyio
    async def test_unfollowed_redirect_is_not_a_generic_failure(self, analyzer, github):
        github.metadata = RepoMoved("old-owner/widget", "https://api.github.com/repositories/42")

        with pytest.raises(UpstreamFailure, match="moved to https://api.github.com/repositories/42"):
            await analyzer.analyze("old-owner/widget")
