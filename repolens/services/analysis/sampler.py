"""
Concurrent per-commit detail sampling.

Line statistics require one request per commit, so only the first
`sample_size` commits are fetched. A failed fetch yields a zero-valued
CommitDetail for that commit and never affects the others.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from repolens.services.github.types import CommitDetail, CommitSummary

logger = logging.getLogger(__name__)

# Concurrency limit for commit detail requests
MAX_CONCURRENT_DETAIL_FETCHES = 10
DEFAULT_SAMPLE_SIZE = 50

EMPTY_DETAIL = CommitDetail()


class CommitDetailSampler:
    """
    Fetches commit details for a bounded sample of commits.

    Args:
        sample_size: Maximum number of commits whose detail is fetched
        max_concurrency: Maximum detail requests in flight at once
    """

    def __init__(
        self,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        max_concurrency: int = MAX_CONCURRENT_DETAIL_FETCHES,
    ) -> None:
        self.sample_size = max(sample_size, 0)
        self.max_concurrency = max(max_concurrency, 1)

    async def sample(
        self,
        commits: list[CommitSummary],
        fetch_detail: Callable[[CommitSummary], Awaitable[CommitDetail]],
    ) -> list[CommitDetail]:
        """
        Fetch details for the first `sample_size` commits.

        Returns:
            One CommitDetail per sampled commit, in commit order. Failed
            fetches are zero-valued. Never raises for individual failures.
        """
        sampled = commits[: self.sample_size]
        if not sampled:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fetch_with_limit(commit: CommitSummary) -> CommitDetail:
            async with semaphore:
                return await fetch_detail(commit)

        results = await asyncio.gather(
            *[fetch_with_limit(c) for c in sampled],
            return_exceptions=True,
        )

        # gather keeps input order, so results[i] belongs to sampled[i]
        details: list[CommitDetail] = []
        failures = 0
        for commit, result in zip(sampled, results, strict=True):
            if isinstance(result, CommitDetail):
                details.append(result)
            elif isinstance(result, Exception):
                failures += 1
                logger.debug(f"Commit detail failed for {commit.sha[:7]}: {result}")
                details.append(EMPTY_DETAIL)
            elif isinstance(result, BaseException):
                raise result
            else:
                details.append(EMPTY_DETAIL)

        if failures:
            logger.warning(f"Commit detail unavailable for {failures}/{len(sampled)} commits")
        return details
