"""Bootstrapping of RemoteWebDriver sessions on a Selenium Grid."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import anyio
from selenium import webdriver
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.common.exceptions import WebDriverException

from .exceptions import GridConnectionError

logger = logging.getLogger(__name__)

# browser -> (options class, stability arguments, headless argument)
BROWSER_OPTIONS = {
    "chrome": (webdriver.ChromeOptions, ("--no-sandbox", "--disable-dev-shm-usage"), "--headless=new"),
    "firefox": (webdriver.FirefoxOptions, (), "-headless"),
    "edge": (webdriver.EdgeOptions, ("--no-sandbox",), "--headless=new"),
}


class CapabilitiesProvider(Protocol):
    """Supplies the merged capability set used to create a session."""

    def capabilities(self) -> dict: ...


class SessionBootstrapper(Protocol):
    """Creates and destroys remote browser sessions."""

    async def create(self) -> WebDriver: ...

    async def destroy(self, driver: WebDriver) -> None: ...


class StaticCapabilitiesProvider:
    """Capabilities from configuration with code-level overrides on top."""

    def __init__(self, base: Optional[dict] = None, overrides: Optional[dict] = None):
        self._base = dict(base or {})
        self._overrides = dict(overrides or {})

    def capabilities(self) -> dict:
        merged = dict(self._base)
        merged.update(self._overrides)
        return merged


class DriverFactory:
    """
    Creates RemoteWebDriver instances connected to Selenium Grid.

    All WebDriver creation is run in a thread pool to avoid blocking
    the async event loop, since Selenium's API is synchronous.
    """

    def __init__(
        self,
        grid_url: str,
        browser: str = "chrome",
        headless: bool = True,
        page_load_timeout: float = 30,
        script_timeout: float = 30,
        capabilities_provider: Optional[CapabilitiesProvider] = None,
        window_size: Optional[str] = None,
    ):
        self.grid_url = grid_url
        self.browser = browser
        self.headless = headless
        self.page_load_timeout = page_load_timeout
        self.script_timeout = script_timeout
        self.capabilities_provider = capabilities_provider or StaticCapabilitiesProvider()
        self.window_size = parse_window_size(window_size) if window_size else None

    async def create(self) -> WebDriver:
        """
        Create a new RemoteWebDriver connected to the Grid.

        Element lookups poll on the client side, so the implicit wait
        is always left at zero.

        Returns:
            Configured WebDriver instance

        Raises:
            GridConnectionError: If unable to connect to Selenium Grid
            ValueError: If browser type is not supported
        """
        options = self._build_options(
            browser=self.browser,
            headless=self.headless,
            extra_capabilities=self.capabilities_provider.capabilities(),
        )

        try:
            # Run blocking WebDriver creation in thread pool
            driver = await anyio.to_thread.run_sync(
                lambda: webdriver.Remote(command_executor=self.grid_url, options=options)
            )

            # Configure timeouts
            await anyio.to_thread.run_sync(
                lambda: driver.set_page_load_timeout(self.page_load_timeout)
            )
            await anyio.to_thread.run_sync(
                lambda: driver.set_script_timeout(self.script_timeout)
            )
            await anyio.to_thread.run_sync(lambda: driver.implicitly_wait(0))
            if self.window_size:
                await anyio.to_thread.run_sync(lambda: driver.set_window_size(*self.window_size))

            logger.info(f"Created {self.browser} session {driver.session_id} on {self.grid_url}")
            return driver

        except WebDriverException as e:
            raise GridConnectionError(self.grid_url, str(e)) from e

    async def destroy(self, driver: WebDriver) -> None:
        """Quit the remote session."""
        await anyio.to_thread.run_sync(driver.quit, abandon_on_cancel=True)

    def _build_options(
        self,
        browser: str,
        headless: bool,
        extra_capabilities: Optional[dict],
    ):
        """Build browser-specific options with capability overrides applied."""
        browser = browser.lower()
        if browser not in BROWSER_OPTIONS:
            raise ValueError(
                f"Unsupported browser: {browser}. "
                f"Supported browsers: {list(BROWSER_OPTIONS)}"
            )

        options_class, arguments, headless_argument = BROWSER_OPTIONS[browser]
        options = options_class()
        for argument in arguments:
            options.add_argument(argument)
        if headless:
            options.add_argument(headless_argument)

        for key, value in (extra_capabilities or {}).items():
            options.set_capability(key, value)
        return options


def parse_window_size(window_size: str) -> tuple[int, int]:
    """Parse ``"1920x1080"`` into ``(1920, 1080)``."""
    try:
        width, height = (int(part) for part in window_size.lower().split("x"))
    except ValueError:
        raise ValueError(f"Window size must look like 1920x1080, got {window_size!r}") from None
    return width, height
