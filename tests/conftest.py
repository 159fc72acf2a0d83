"""Pytest fixtures for testing the guarded session engine."""

import pytest
from unittest.mock import MagicMock, AsyncMock

from selenium_guard.core.context import BrowserContext
from selenium_guard.core.driver_factory import DriverFactory
from selenium_guard.core.element_cache import ElementCache
from selenium_guard.core.session import SessionHandle
from selenium_guard.core.supervisor import RecoverySupervisor


def make_webelement(text="Click Me"):
    element = MagicMock()
    element.tag_name = "button"
    element.text = text
    element.is_displayed.return_value = True
    element.is_enabled.return_value = True
    element.is_selected.return_value = False
    element.get_attribute.return_value = None
    element.find_elements = MagicMock(return_value=[])
    return element


@pytest.fixture
def mock_webelement():
    """Create a mock WebElement."""
    return make_webelement()


@pytest.fixture
def mock_webdriver(mock_webelement):
    """Create a mock WebDriver with common methods."""
    driver = MagicMock()

    # Navigation
    driver.get = MagicMock()
    driver.refresh = MagicMock()
    driver.back = MagicMock()
    driver.current_url = "https://example.com"
    driver.title = "Example Page"

    # Execute script (page-update probes see a complete document)
    driver.execute_script = MagicMock(return_value=True)

    # Find elements
    driver.find_elements = MagicMock(return_value=[mock_webelement])

    # Frames and alerts
    driver.switch_to.default_content = MagicMock()
    driver.switch_to.frame = MagicMock()

    # Timeouts
    driver.set_page_load_timeout = MagicMock()
    driver.set_script_timeout = MagicMock()
    driver.implicitly_wait = MagicMock()

    # Session
    driver.session_id = "mock-session-id"
    driver.capabilities = {"browserName": "chrome", "platformName": "linux"}

    # Cleanup
    driver.quit = MagicMock()

    return driver


@pytest.fixture
def mock_driver_factory(mock_webdriver):
    """Create mock DriverFactory that returns mock WebDriver."""
    factory = MagicMock(spec=DriverFactory)
    factory.create = AsyncMock(return_value=mock_webdriver)
    factory.destroy = AsyncMock()
    factory.grid_url = "http://mock-grid:4444"
    return factory


@pytest.fixture
def session(mock_driver_factory):
    """SessionHandle backed by the mock factory."""
    return SessionHandle(mock_driver_factory, default_wait_timeout=0.2)


@pytest.fixture
def cache():
    return ElementCache()


@pytest.fixture
def supervisor(session, cache):
    """Supervisor wired like a BrowserContext wires it."""
    session.on_reset(cache.clear)
    return RecoverySupervisor(session, cache)


@pytest.fixture
def browser_context(mock_driver_factory):
    """BrowserContext with short timeouts and fast polling."""
    return BrowserContext(
        mock_driver_factory,
        default_wait_timeout=0.2,
        poll_interval=0.01,
        page_load_timeout=0.2,
    )


@pytest.fixture
def make_element():
    """Factory for additional mock WebElements."""
    return make_webelement
