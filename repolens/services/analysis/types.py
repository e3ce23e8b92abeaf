"""Data types for analysis results."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

from repolens.services.github.types import (
    CommitDetail,
    CommitSummary,
    ContributorSummary,
    RepoMetadata,
    WeeklyBucket,
)

CacheStatus = Literal["HIT", "MISS", "BYPASS"]


@dataclass(frozen=True)
class RepoIdentifier:
    """Normalized `owner/repo` pair."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def cache_key(self) -> str:
        """Case-insensitive key; GitHub treats owner and repo names case-insensitively."""
        return self.full_name.lower()


@dataclass(frozen=True)
class LanguageShare:
    """One language's share of the repository, for display."""

    name: str
    bytes: int
    percentage: float
    color: str


@dataclass(frozen=True)
class CommitRecord:
    """A listed commit, paired with its detail when it was inside the sample."""

    summary: CommitSummary
    detail: CommitDetail | None = None


@dataclass(frozen=True)
class AnalysisReport:
    """Merged analytics for one repository.

    Sections that failed upstream are empty rather than missing, so callers
    handle "no data" and "could not fetch" the same way.
    """

    repo: RepoMetadata
    languages: Mapping[str, int]  # Read-only view; reports are shared through the cache
    language_percentages: tuple[LanguageShare, ...]
    commits: tuple[CommitRecord, ...]
    code_frequency: tuple[WeeklyBucket, ...]
    contributors: tuple[ContributorSummary, ...]
    total_additions: int
    total_deletions: int
    total_lines: int
    is_private: bool
    # GitHub had not finished computing the code frequency series
    code_frequency_computing: bool = False
    # Contributors came from the plain list; weekly breakdowns are unavailable
    contributors_fallback: bool = False
    requires_auth: bool = False


@dataclass(frozen=True)
class AnalysisOutcome:
    report: AnalysisReport
    cache_status: CacheStatus
    cache_age: float | None = None  # Seconds, set on cache hits


@dataclass(frozen=True)
class CodeFrequencyOutcome:
    """Result of a standalone code frequency lookup."""

    data: tuple[WeeklyBucket, ...] = field(default_factory=tuple)
    computing: bool = False
    cache_status: CacheStatus = "BYPASS"
