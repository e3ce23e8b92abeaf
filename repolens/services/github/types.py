"""Data types for GitHub API responses."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RepoMetadata:
    """Snapshot of a repository's attributes, fetched once per analysis."""

    name: str
    full_name: str
    description: str | None
    url: str
    stars: int
    forks: int
    watchers: int
    open_issues: int
    default_branch: str
    created_at: str | None
    updated_at: str | None
    pushed_at: str | None
    size: int  # Kilobytes, as reported by GitHub
    is_private: bool


@dataclass(frozen=True)
class CommitSummary:
    """One entry of the commit list."""

    sha: str
    message: str  # First line only
    author: str
    author_avatar: str
    date: str  # ISO 8601, empty when GitHub omits it


@dataclass(frozen=True)
class CommitDetail:
    """Per-commit line statistics from the single-commit endpoint."""

    additions: int = 0
    deletions: int = 0
    files: int = 0


@dataclass(frozen=True)
class WeeklyBucket:
    """One week of activity (repository-wide or per contributor)."""

    week: int  # Unix timestamp of the week start
    additions: int
    deletions: int
    commits: int = 0


@dataclass(frozen=True)
class ContributorSummary:
    """Contributor ranking entry.

    `weeks` is empty when the data came from the plain contributor list, which
    has no weekly breakdown; that means "granularity unavailable", not "no
    activity".
    """

    author: str
    avatar: str
    total_commits: int
    weeks: tuple[WeeklyBucket, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UserRepo:
    """Repository entry from the authenticated user's repository list."""

    id: int
    name: str
    full_name: str
    description: str | None
    url: str
    stars: int
    is_private: bool
    language: str | None
    updated_at: str
