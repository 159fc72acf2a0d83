"""Fixtures for integration tests against a real Selenium Grid."""

import httpx
import pytest
import pytest_asyncio

from selenium_guard.config import Settings
from selenium_guard.core.context import BrowserContext

GRID_URL = Settings().grid_url


def grid_ready(url: str) -> bool:
    try:
        response = httpx.get(f"{url}/status", timeout=5.0)
        return response.status_code == 200 and response.json().get("value", {}).get("ready") is True
    except httpx.HTTPError:
        return False


@pytest.fixture(scope="session")
def grid_url():
    """Return the Selenium Grid URL, skipping when the grid is not reachable."""
    if not grid_ready(GRID_URL):
        pytest.skip(f"Selenium Grid not reachable at {GRID_URL}")
    return GRID_URL


@pytest_asyncio.fixture
async def browser_context(grid_url):
    """Guarded context on the real grid, closed after the test."""
    context = BrowserContext.from_settings(Settings(grid_url=grid_url))
    yield context
    await context.close()
