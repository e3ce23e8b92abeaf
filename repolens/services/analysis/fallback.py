"""
Contributor statistics with a low-fidelity fallback.

The contributor statistics endpoint is computed asynchronously and may never
become ready within the polling budget. The plain contributor list is always
answered synchronously but only carries lifetime commit counts, so the
fallback ranking has empty weekly breakdowns.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from functools import wraps
from typing import ParamSpec

from repolens.services.analysis.polling import PollResult
from repolens.services.github.types import ContributorSummary

logger = logging.getLogger(__name__)

P = ParamSpec("P")


@dataclass(frozen=True)
class ContributorSection:
    contributors: tuple[ContributorSummary, ...] = field(default_factory=tuple)
    used_fallback: bool = False


def rank_contributors(contributors: list[ContributorSummary]) -> tuple[ContributorSummary, ...]:
    """Order contributors by total commits, most active first."""
    return tuple(sorted(contributors, key=lambda c: c.total_commits, reverse=True))


def with_contributor_fallback(
    primary: Callable[P, Awaitable[PollResult[list[ContributorSummary]]]],
    fallback: Callable[P, Awaitable[list[ContributorSummary]]],
) -> Callable[P, Awaitable[ContributorSection]]:
    """
    Combine a polled contributor-stats call with the plain contributor list.

    Both callables take the same arguments. The fallback is called exactly
    once, and only when the primary exhausted its attempts without data.
    Errors from either call propagate.
    """

    @wraps(primary)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ContributorSection:
        result = await primary(*args, **kwargs)
        if not result.computing:
            return ContributorSection(contributors=rank_contributors(result.data or []))

        logger.info(
            f"Contributor stats not ready after {result.attempts} attempts, "
            f"using contributor list"
        )
        contributors = await fallback(*args, **kwargs)
        # The plain list has no weekly breakdown, whatever the endpoint sends
        flattened = [replace(c, weeks=()) for c in contributors]
        return ContributorSection(contributors=rank_contributors(flattened), used_fallback=True)

    return wrapper
