"""
Bounded polling for GitHub statistics endpoints.

GitHub computes code frequency and contributor statistics in the background
and answers 202 until they are ready. `poll_until_ready` wraps such a call in
a retry loop; running out of attempts is a normal outcome (new or very large
repositories), reported as `PollResult.computing` rather than an error.

Usage:
    poll_code_frequency = poll_until_ready(github.get_code_frequency, CODE_FREQUENCY)
    result = await poll_code_frequency(owner, repo)
    if result.computing:
        ...
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps
from typing import Generic, ParamSpec, TypeVar

from repolens.services.github.exceptions import StatsComputing

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

Backoff = Callable[[int], float]
Sleep = Callable[[float], Awaitable[None]]


def fixed_backoff(delay: float) -> Backoff:
    """Wait the same `delay` seconds after every pending attempt."""
    return lambda attempt: delay


def linear_backoff(step: float) -> Backoff:
    """Wait `attempt * step` seconds after the given (1-based) attempt."""
    return lambda attempt: attempt * step


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int
    backoff: Backoff

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


@dataclass(frozen=True)
class PollResult(Generic[T]):
    data: T | None
    attempts: int

    @property
    def computing(self) -> bool:
        """True when every attempt came back 202."""
        return self.data is None


def poll_until_ready(
    call: Callable[P, Awaitable[T]],
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
) -> Callable[P, Awaitable[PollResult[T]]]:
    """
    Wrap an async call that may raise StatsComputing in a bounded retry loop.

    Attempts run sequentially. After a pending attempt the wrapper waits
    `policy.backoff(attempt)` seconds, except after the last one. Any other
    exception propagates unchanged on the attempt that raised it.
    """

    @wraps(call)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> PollResult[T]:
        name = getattr(call, "__name__", "call")
        for attempt in range(1, policy.max_attempts + 1):
            try:
                data = await call(*args, **kwargs)
            except StatsComputing as e:
                if attempt == policy.max_attempts:
                    break
                delay = policy.backoff(attempt)
                logger.info(
                    f"{name}: {e.resource} still computing "
                    f"(attempt {attempt}/{policy.max_attempts}), retrying in {delay:g}s"
                )
                await sleep(delay)
                continue
            return PollResult(data=data, attempts=attempt)

        logger.info(f"{name}: still computing after {policy.max_attempts} attempts")
        return PollResult(data=None, attempts=policy.max_attempts)

    return wrapper
