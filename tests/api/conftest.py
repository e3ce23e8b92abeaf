"""API test fixtures: an ASGI client wired to an analyzer with fake upstream."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from repolens.api.deps import get_analyzer
from repolens.main import app
from repolens.services.analysis import RepoAnalyzer


@pytest.fixture
def analyzer() -> RepoAnalyzer:
    """Analyzer with a fresh cache; tests patch its methods as needed."""
    return RepoAnalyzer()


@pytest.fixture
async def api_client(analyzer: RepoAnalyzer) -> AsyncIterator[AsyncClient]:
    """HTTP client against the app, with the analyzer dependency overridden."""
    app.dependency_overrides[get_analyzer] = lambda: analyzer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
