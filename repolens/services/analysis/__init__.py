"""
Repository analytics: aggregation and resilience around the GitHub API.

Usage: `from repolens.services.analysis import RepoAnalyzer`

Module structure:
- aggregator.py: RepoAnalyzer orchestration and derived metrics
- cache.py: ResultCache (TTL + capacity bounded)
- polling.py: Bounded retry for statistics GitHub computes asynchronously
- fallback.py: Contributor stats with the plain contributor list as fallback
- sampler.py: Concurrent commit detail sampling
- identifiers.py: Repository URL/slug parsing
- errors.py: Errors that abort an analysis
- types.py: Report types
"""

from repolens.services.analysis.aggregator import (
    RepoAnalyzer,
    estimate_total_lines,
    language_breakdown,
    merge_report,
)
from repolens.services.analysis.cache import CacheEntry, CacheLookup, ResultCache
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
from repolens.services.analysis.fallback import ContributorSection, with_contributor_fallback
from repolens.services.analysis.identifiers import parse_repo_identifier
from repolens.services.analysis.polling import (
    PollResult,
    RetryPolicy,
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

__all__ = [
    # Orchestration
    "RepoAnalyzer",
    "merge_report",
    "language_breakdown",
    "estimate_total_lines",
    # Resilience building blocks
    "ResultCache",
    "CacheEntry",
    "CacheLookup",
    "RetryPolicy",
    "PollResult",
    "poll_until_ready",
    "fixed_backoff",
    "linear_backoff",
    "ContributorSection",
    "with_contributor_fallback",
    "CommitDetailSampler",
    "parse_repo_identifier",
    # Errors
    "AnalysisError",
    "AnalysisTimeout",
    "CredentialRejected",
    "InvalidRepoIdentifier",
    "PrivateRepository",
    "RateLimitExceeded",
    "RepoNotFound",
    "UpstreamFailure",
    # Types
    "AnalysisOutcome",
    "AnalysisReport",
    "CodeFrequencyOutcome",
    "CommitRecord",
    "LanguageShare",
    "RepoIdentifier",
]
