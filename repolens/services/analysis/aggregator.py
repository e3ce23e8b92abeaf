"""
Repository analysis orchestrator.

Turns a repository URL or slug into one AnalysisReport:

1. Parse and normalize the identifier.
2. Anonymous callers only: serve a fresh cached report without any request.
3. Fetch repository metadata. This is the only upstream call whose failure
   aborts the analysis; a private repository without a token stops here too.
4. Fetch languages, commits (plus sampled commit details), code frequency and
   contributors concurrently. A section that fails is logged and left empty.
5. Merge sections and derive percentages and totals.
6. Anonymous callers only: cache the report. Authenticated reports may
   contain private data and are never cached.
"""

import asyncio
import logging
from collections.abc import Callable
from types import MappingProxyType
from typing import Any, TypeVar

from repolens.config import Settings, settings
from repolens.services.analysis.cache import ResultCache
from repolens.services.analysis.errors import (
    AnalysisError,
    AnalysisTimeout,
    CredentialRejected,
    PrivateRepository,
    RateLimitExceeded,
    RepoNotFound,
    UpstreamFailure,
)
from repolens.services.analysis.fallback import ContributorSection, with_contributor_fallback
from repolens.services.analysis.identifiers import parse_repo_identifier
from repolens.services.analysis.polling import (
    RetryPolicy,
    Sleep,
    fixed_backoff,
    linear_backoff,
    poll_until_ready,
)
from repolens.services.analysis.sampler import CommitDetailSampler
from repolens.services.analysis.types import (
    AnalysisOutcome,
    AnalysisReport,
    CodeFrequencyOutcome,
    CommitRecord,
    LanguageShare,
    RepoIdentifier,
)
from repolens.services.github.constants import DEFAULT_LANGUAGE_COLOR, GITHUB_LANGUAGE_COLORS
from repolens.services.github.exceptions import (
    GitHubAPIError,
    InvalidCredential,
    RateLimited,
    RepoMoved,
    RepoNotFoundOrPrivate,
)
from repolens.services.github.read_operations import GitHubReadOperations
from repolens.services.github.types import (
    ContributorSummary,
    RepoMetadata,
    UserRepo,
    WeeklyBucket,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Code frequency is usually ready quickly; contributor stats take longer
CODE_FREQUENCY_POLICY = RetryPolicy(max_attempts=3, backoff=fixed_backoff(2.0))
CONTRIBUTOR_STATS_POLICY = RetryPolicy(max_attempts=5, backoff=linear_backoff(1.0))

ClientFactory = Callable[[str | None], GitHubReadOperations]

# ─────────────────────────────────────────────────────────────
# Derived metrics
# ─────────────────────────────────────────────────────────────


def language_breakdown(languages: dict[str, int]) -> tuple[LanguageShare, ...]:
    """
    Convert language byte counts to percentage shares, largest first.

    Percentages are unrounded so they sum to 100 whenever any bytes exist;
    with zero total bytes every share is 0.
    """
    total_bytes = sum(languages.values())
    shares = [
        LanguageShare(
            name=name,
            bytes=byte_count,
            percentage=(byte_count / total_bytes) * 100 if total_bytes > 0 else 0.0,
            color=GITHUB_LANGUAGE_COLORS.get(name, DEFAULT_LANGUAGE_COLOR),
        )
        for name, byte_count in languages.items()
    ]
    shares.sort(key=lambda s: s.bytes, reverse=True)
    return tuple(shares)


def estimate_total_lines(total_additions: int, total_deletions: int) -> int:
    """
    Approximate lines of code from sampled commit deltas.

    GitHub does not expose a repository's line count. Net change is used when
    positive; otherwise gross additions, so deletion-heavy history never
    yields a negative or near-zero figure.
    """
    net = total_additions - total_deletions
    return net if net > 0 else total_additions


def merge_report(
    metadata: RepoMetadata,
    languages: dict[str, int],
    commits: tuple[CommitRecord, ...],
    code_frequency: tuple[WeeklyBucket, ...],
    code_frequency_computing: bool,
    contributors: ContributorSection,
) -> AnalysisReport:
    """Combine fetched sections into a report and compute derived totals."""
    total_additions = sum(c.detail.additions for c in commits if c.detail)
    total_deletions = sum(c.detail.deletions for c in commits if c.detail)

    return AnalysisReport(
        repo=metadata,
        languages=MappingProxyType(dict(languages)),
        language_percentages=language_breakdown(languages),
        commits=commits,
        code_frequency=code_frequency,
        contributors=contributors.contributors,
        total_additions=total_additions,
        total_deletions=total_deletions,
        total_lines=estimate_total_lines(total_additions, total_deletions),
        is_private=metadata.is_private,
        code_frequency_computing=code_frequency_computing,
        contributors_fallback=contributors.used_fallback,
    )


def translate_upstream_error(error: GitHubAPIError) -> AnalysisError:
    """Map a GitHub error on a must-succeed call to the caller-facing error."""
    if isinstance(error, RepoNotFoundOrPrivate):
        return RepoNotFound()
    if isinstance(error, RateLimited):
        return RateLimitExceeded(error.rate_limit_reset)
    if isinstance(error, InvalidCredential):
        return CredentialRejected()
    if isinstance(error, RepoMoved):
        return UpstreamFailure(error.message)
    return UpstreamFailure(f"Failed to analyze repository: {error.message}")


def _section(name: str, identifier: RepoIdentifier, result: T | BaseException, default: T) -> T:
    """Unwrap one gathered section, substituting `default` for a failure."""
    if isinstance(result, Exception):
        logger.warning(f"{name} unavailable for {identifier.full_name}: {result}")
        return default
    if isinstance(result, BaseException):
        raise result
    return result


class RepoAnalyzer:
    """
    Builds analysis reports from the GitHub REST API.

    The caches are owned by the instance, so a fresh analyzer starts cold;
    the HTTP layer keeps one process-wide instance.

    Args:
        report_cache: Cache for full reports (anonymous requests only)
        stats_cache: Cache for standalone code frequency lookups
        client_factory: Builds a GitHub client for an optional token
        sampler: Commit detail sampler
        code_frequency_policy: Polling policy for the code frequency endpoint
        contributor_policy: Polling policy for the contributor stats endpoint
        commit_list_limit: Number of recent commits listed per analysis
        fallback_contributor_limit: Page size of the plain contributor list
        user_repos_max_pages: Page cap when listing a user's repositories
        sleep: Awaitable used between poll attempts (replaceable in tests)
    """

    def __init__(
        self,
        report_cache: ResultCache[AnalysisReport] | None = None,
        stats_cache: ResultCache[tuple[WeeklyBucket, ...]] | None = None,
        client_factory: ClientFactory = GitHubReadOperations,
        sampler: CommitDetailSampler | None = None,
        code_frequency_policy: RetryPolicy = CODE_FREQUENCY_POLICY,
        contributor_policy: RetryPolicy = CONTRIBUTOR_STATS_POLICY,
        commit_list_limit: int = 50,
        fallback_contributor_limit: int = 100,
        user_repos_max_pages: int = 5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        # Explicit None checks: an empty cache is falsy
        self.report_cache: ResultCache[AnalysisReport] = (
            report_cache if report_cache is not None else ResultCache()
        )
        self.stats_cache: ResultCache[tuple[WeeklyBucket, ...]] = (
            stats_cache if stats_cache is not None else ResultCache(capacity=50)
        )
        self.client_factory = client_factory
        self.sampler = sampler or CommitDetailSampler()
        self.code_frequency_policy = code_frequency_policy
        self.contributor_policy = contributor_policy
        self.commit_list_limit = commit_list_limit
        self.fallback_contributor_limit = fallback_contributor_limit
        self.user_repos_max_pages = user_repos_max_pages
        self._sleep = sleep

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "RepoAnalyzer":
        """Build an analyzer tuned by application settings."""
        return cls(
            report_cache=ResultCache(
                ttl=config.report_cache_ttl_seconds,
                capacity=config.report_cache_max_size,
            ),
            stats_cache=ResultCache(
                ttl=config.report_cache_ttl_seconds,
                capacity=config.stats_cache_max_size,
            ),
            sampler=CommitDetailSampler(
                sample_size=config.commit_sample_size,
                max_concurrency=config.commit_detail_concurrency,
            ),
            code_frequency_policy=RetryPolicy(
                max_attempts=config.code_frequency_max_attempts,
                backoff=fixed_backoff(config.code_frequency_retry_delay),
            ),
            contributor_policy=RetryPolicy(
                max_attempts=config.contributor_stats_max_attempts,
                backoff=linear_backoff(config.contributor_stats_retry_step),
            ),
            commit_list_limit=config.commit_list_limit,
            fallback_contributor_limit=config.fallback_contributor_limit,
            user_repos_max_pages=config.user_repos_max_pages,
        )

    # ─────────────────────────────────────────────────────────────
    # Public operations
    # ─────────────────────────────────────────────────────────────

    async def analyze(
        self,
        repo_url: str | None,
        token: str | None = None,
        timeout: float | None = None,
    ) -> AnalysisOutcome:
        """
        Analyze a repository.

        Args:
            repo_url: `owner/repo` or a GitHub repository URL
            token: Optional GitHub token; raises rate limits and unlocks private repos
            timeout: Optional deadline in seconds for the whole analysis

        Returns:
            AnalysisOutcome with the report and whether it came from the cache

        Raises:
            InvalidRepoIdentifier: Malformed input
            PrivateRepository: Private repository and no token
            RepoNotFound, RateLimitExceeded, CredentialRejected, UpstreamFailure:
                The metadata fetch failed
            AnalysisTimeout: The deadline passed; partial sections are discarded
        """
        identifier = parse_repo_identifier(repo_url)

        if not token:
            cached, found, age = self.report_cache.get(identifier.cache_key)
            if found and cached is not None:
                logger.debug(f"Cache HIT: {identifier.cache_key}")
                return AnalysisOutcome(report=cached, cache_status="HIT", cache_age=age)
            logger.debug(f"Cache MISS: {identifier.cache_key}")

        logger.info(
            f"Analyzing {identifier.full_name} ({'authenticated' if token else 'anonymous'})"
        )

        if timeout is None:
            report = await self._build_report(identifier, token)
        else:
            try:
                async with asyncio.timeout(timeout):
                    report = await self._build_report(identifier, token)
            except TimeoutError as e:
                logger.warning(f"Analysis of {identifier.full_name} timed out after {timeout}s")
                raise AnalysisTimeout(timeout) from e

        if token:
            return AnalysisOutcome(report=report, cache_status="BYPASS")

        self.report_cache.set(identifier.cache_key, report)
        logger.info(
            f"Cached result for: {identifier.cache_key} (cache size: {len(self.report_cache)})"
        )
        return AnalysisOutcome(report=report, cache_status="MISS")

    async def get_code_frequency(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
    ) -> CodeFrequencyOutcome:
        """
        Fetch only the weekly code frequency series.

        Anonymous results are cached, but only once GitHub has produced data:
        a "still computing" answer must not stick for the whole TTL.
        """
        identifier = parse_repo_identifier(f"{owner}/{repo}")

        if not token:
            cached, found, _ = self.stats_cache.get(identifier.cache_key)
            if found and cached:
                return CodeFrequencyOutcome(data=cached, computing=False, cache_status="HIT")

        github = self.client_factory(token)
        try:
            data, computing = await self._fetch_code_frequency(github, identifier)
        except GitHubAPIError as e:
            raise translate_upstream_error(e) from e

        if token:
            return CodeFrequencyOutcome(data=data, computing=computing, cache_status="BYPASS")

        if data:
            self.stats_cache.set(identifier.cache_key, data)
        return CodeFrequencyOutcome(data=data, computing=computing, cache_status="MISS")

    async def list_user_repos(self, token: str | None) -> list[UserRepo]:
        """List the token owner's repositories, most recently updated first."""
        if not token:
            raise AnalysisError("Not authenticated", requires_auth=True)

        github = self.client_factory(token)
        try:
            return await github.list_user_repos(max_pages=self.user_repos_max_pages)
        except GitHubAPIError as e:
            raise translate_upstream_error(e) from e

    def cache_stats(self) -> dict[str, dict[str, Any]]:
        """Get current cache statistics for monitoring."""
        return {
            "reports": self.report_cache.stats(),
            "code_frequency": self.stats_cache.stats(),
        }

    def clear_caches(self) -> None:
        self.report_cache.clear()
        self.stats_cache.clear()

    # ─────────────────────────────────────────────────────────────
    # Sections
    # ─────────────────────────────────────────────────────────────

    async def _build_report(
        self,
        identifier: RepoIdentifier,
        token: str | None,
    ) -> AnalysisReport:
        github = self.client_factory(token)

        try:
            metadata = await github.get_repo_metadata(identifier.owner, identifier.name)
        except GitHubAPIError as e:
            raise translate_upstream_error(e) from e

        # Fail fast: nothing else is fetched for a repo the caller may not see
        if metadata.is_private and not token:
            raise PrivateRepository()

        languages, commits, code_frequency, contributors = await asyncio.gather(
            github.get_repo_languages(identifier.owner, identifier.name),
            self._fetch_commits(github, identifier),
            self._fetch_code_frequency(github, identifier),
            self._fetch_contributors(github, identifier),
            return_exceptions=True,
        )

        frequency_data, frequency_computing = _section(
            "Code frequency", identifier, code_frequency, ((), False)
        )
        report = merge_report(
            metadata=metadata,
            languages=_section("Languages", identifier, languages, {}),
            commits=_section("Commits", identifier, commits, ()),
            code_frequency=frequency_data,
            code_frequency_computing=frequency_computing,
            contributors=_section("Contributors", identifier, contributors, ContributorSection()),
        )

        logger.info(
            f"Analyzed {identifier.full_name}: {len(report.commits)} commits, "
            f"{len(report.contributors)} contributors, {report.total_lines} estimated lines"
        )
        return report

    async def _fetch_commits(
        self,
        github: GitHubReadOperations,
        identifier: RepoIdentifier,
    ) -> tuple[CommitRecord, ...]:
        owner, name = identifier.owner, identifier.name
        summaries = await github.list_commits(owner, name, per_page=self.commit_list_limit)
        details = await self.sampler.sample(
            summaries,
            lambda commit: github.get_commit_detail(owner, name, commit.sha),
        )
        return tuple(
            CommitRecord(summary=summary, detail=details[i] if i < len(details) else None)
            for i, summary in enumerate(summaries)
        )

    async def _fetch_code_frequency(
        self,
        github: GitHubReadOperations,
        identifier: RepoIdentifier,
    ) -> tuple[tuple[WeeklyBucket, ...], bool]:
        """Returns (weekly series, still computing)."""
        poll = poll_until_ready(
            github.get_code_frequency, self.code_frequency_policy, sleep=self._sleep
        )
        result = await poll(identifier.owner, identifier.name)
        return tuple(result.data or ()), result.computing

    async def _fetch_contributors(
        self,
        github: GitHubReadOperations,
        identifier: RepoIdentifier,
    ) -> ContributorSection:
        async def list_contributors(owner: str, repo: str) -> list[ContributorSummary]:
            return await github.list_contributors(
                owner, repo, limit=self.fallback_contributor_limit
            )

        fetch = with_contributor_fallback(
            poll_until_ready(
                github.get_contributor_stats, self.contributor_policy, sleep=self._sleep
            ),
            list_contributors,
        )
        return await fetch(identifier.owner, identifier.name)
