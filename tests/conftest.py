"""Root conftest: shared test configuration.

Async tests use `@pytest.mark.anyio`; they run on asyncio only, since the
analysis deadline relies on `asyncio.timeout`.
"""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
