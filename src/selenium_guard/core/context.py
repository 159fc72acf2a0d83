"""Per-execution-context bundle of session, cache, resolver and waits."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Iterator, Optional

from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement

from ..config import Settings, settings as default_settings
from .driver_factory import DriverFactory, SessionBootstrapper, StaticCapabilitiesProvider
from .element_cache import ElementCache
from .locators import LocatorConverter
from .resolver import ChainLike, ElementResolver
from .session import SessionHandle, SessionState
from .supervisor import CallTrace, RecoverySupervisor
from .waits import WaitEngine, WaitSpec

logger = logging.getLogger(__name__)


class BrowserContext:
    """
    Everything one logical caller needs to drive one remote session.

    A context owns its SessionHandle, ElementCache, CallTrace and the
    supervisor, resolver and wait engine wired to them. Contexts share
    nothing, so concurrent callers each get their own.
    """

    def __init__(
        self,
        bootstrapper: SessionBootstrapper,
        default_wait_timeout: float = 10.0,
        poll_interval: float = 0.5,
        call_timeout: float = 0,
        split_margin: float = 5.0,
        page_load_timeout: float = 30.0,
        fail_on_page_load_timeout: bool = True,
        converter: Optional[LocatorConverter] = None,
        name: str = "default",
    ):
        self.name = name
        self.session = SessionHandle(
            bootstrapper,
            default_wait_timeout=default_wait_timeout,
            command_timeout=call_timeout if call_timeout > 0 else page_load_timeout,
        )
        self.cache = ElementCache()
        self.trace = CallTrace()
        self.supervisor = RecoverySupervisor(
            self.session, self.cache, call_timeout=call_timeout, trace=self.trace
        )
        self.resolver = ElementResolver(
            self.session,
            self.cache,
            self.supervisor,
            converter=converter,
            poll_interval=poll_interval,
        )
        self.waits = WaitEngine(
            self.session,
            self.supervisor,
            call_timeout=call_timeout,
            split_margin=split_margin,
            poll_interval=poll_interval,
            page_load_timeout=page_load_timeout,
            fail_on_page_load_timeout=fail_on_page_load_timeout,
        )
        self.supervisor.set_page_settle(self.waits.wait_for_page_update)
        self.resolver.set_page_settle(self.waits.wait_for_page_update)
        # A recreated session must never see handles from the previous one
        self.session.on_reset(self.cache.clear)

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        bootstrapper: Optional[SessionBootstrapper] = None,
        name: str = "default",
        **capability_overrides: Any,
    ) -> "BrowserContext":
        """Build a context (and, unless given, a DriverFactory) from Settings."""
        config = config or default_settings
        if bootstrapper is None:
            bootstrapper = DriverFactory(
                grid_url=config.grid_url,
                browser=config.default_browser,
                headless=config.headless,
                page_load_timeout=config.page_load_timeout_seconds,
                script_timeout=config.script_timeout_seconds,
                capabilities_provider=StaticCapabilitiesProvider(
                    config.extra_capabilities, capability_overrides
                ),
                window_size=config.window_size,
            )
        return cls(
            bootstrapper,
            default_wait_timeout=config.element_timeout_seconds,
            poll_interval=config.poll_interval_seconds,
            call_timeout=config.driver_operation_timeout_seconds,
            split_margin=config.split_wait_margin_seconds,
            page_load_timeout=config.page_load_timeout_seconds,
            fail_on_page_load_timeout=config.fail_on_page_load_timeout,
            name=name,
        )

    @property
    def converter(self) -> LocatorConverter:
        return self.resolver.converter

    async def driver(self) -> WebDriver:
        """Active WebDriver, recreating the session if it was lost."""
        return await self.session.get_driver()

    async def resolve(self, target: ChainLike, timeout: Optional[float] = None) -> WebElement:
        """Resolve a locator chain to a live element (see ElementResolver.resolve)."""
        return await self.resolver.resolve(target, timeout)

    async def find_all(self, target: ChainLike) -> list[WebElement]:
        return await self.resolver.find_all(target)

    async def wait_for(self, condition: Callable[[], Any], spec: Optional[WaitSpec] = None) -> Any:
        return await self.waits.wait_for(condition, spec)

    async def wait_for_page_update(self, timeout: Optional[float] = None) -> None:
        await self.waits.wait_for_page_update(timeout)

    async def with_retry(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return await self.supervisor.with_retry(operation, fn, *args, **kwargs)

    async def call(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        return await self.supervisor.call(operation, fn, *args)

    def clear_cache(self) -> int:
        return self.cache.clear()

    @property
    def state(self) -> SessionState:
        return self.session.state

    def current_session_state(self) -> SessionState:
        return self.session.state

    def without_waiting(self):
        return self.session.without_waiting()

    def waiting_timeout(self, timeout: float):
        return self.session.waiting_timeout(timeout)

    async def close(self) -> None:
        """Close the session; the next use starts a fresh one."""
        await self.session.close()

    def to_dict(self) -> dict:
        info = self.session.to_dict()
        info["name"] = self.name
        info["cached_elements"] = len(self.cache)
        return info


current_context: ContextVar[Optional[BrowserContext]] = ContextVar(
    "selenium_guard_context", default=None
)


def get_current_context() -> BrowserContext:
    """
    Return the BrowserContext bound to the running task.

    A context is created from the global settings on first use.
    """
    context = current_context.get()
    if context is None:
        context = BrowserContext.from_settings()
        current_context.set(context)
        logger.debug("Created browser context for the current execution context")
    return context


@contextmanager
def use_context(context: BrowserContext) -> Iterator[BrowserContext]:
    """Bind ``context`` to the current execution context for the block."""
    token = current_context.set(context)
    try:
        yield context
    finally:
        current_context.reset(token)
