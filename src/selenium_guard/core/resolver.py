"""Resolution of locator chains to live remote elements."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

import anyio
from selenium.common.exceptions import NoSuchWindowException, StaleElementReferenceException
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement

from ..config import TRACE
from .element_cache import ElementCache
from .exceptions import NoSuchElementError
from .locators import Locator, LocatorChain, LocatorConverter
from .session import SessionHandle
from .supervisor import RecoverySupervisor

logger = logging.getLogger(__name__)

ChainLike = Union[LocatorChain, Locator, str, Sequence[Union[Locator, str]]]


def as_chain(target: ChainLike) -> LocatorChain:
    """Coerce a chain, a locator, a locator string or a sequence of those into a LocatorChain."""
    if isinstance(target, LocatorChain):
        return target
    if isinstance(target, (list, tuple)):
        return LocatorChain.of(*target)
    return LocatorChain.of(target)


class ElementResolver:
    """
    Resolves locator chains against the current session, caching each
    resolved prefix of the chain.

    Lookups poll on the client side: each attempt issues ``find_elements``
    (which never waits on the remote side) and attempts repeat every
    ``poll_interval`` seconds until the timeout elapses. This keeps every
    single transport call short regardless of how long the caller waits.
    """

    def __init__(
        self,
        session: SessionHandle,
        cache: ElementCache,
        supervisor: RecoverySupervisor,
        converter: Optional[LocatorConverter] = None,
        poll_interval: float = 0.5,
    ):
        self._session = session
        self._cache = cache
        self._supervisor = supervisor
        self.converter = converter or LocatorConverter()
        self.poll_interval = poll_interval
        self._settle: Optional[Callable[[], Awaitable[Any]]] = None

    def set_page_settle(self, settle: Callable[[], Awaitable[Any]]) -> None:
        """Register the coroutine used to wait for the page after a window switch."""
        self._settle = settle

    async def resolve(self, target: ChainLike, timeout: Optional[float] = None) -> WebElement:
        """
        Resolve a locator chain to a WebElement.

        Args:
            target: Locator chain (or single locator / locator string)
            timeout: Seconds to keep trying; defaults to the session wait
                timeout. Zero means a single attempt.

        Returns:
            The resolved WebElement

        Raises:
            NoSuchElementError: If the chain cannot be resolved in time
            NoSuchWindowException: If the window is still gone after
                switching to the last open one
            UnknownLocatorKindError: If a locator kind has no converter
        """
        chain = as_chain(target)
        self.converter.validate(chain)
        if timeout is None:
            timeout = self._session.wait_timeout
        logger.log(TRACE, f"Find element: {chain} [{timeout}s]")

        deadline = anyio.current_time() + timeout
        switched_window = False
        while True:
            try:
                return await self._resolve_once(chain)
            except NoSuchWindowException:
                # The current window was closed (e.g. a popup); retry once in the last one
                if switched_window:
                    raise
                switched_window = True
                await self._switch_to_last_window()
                continue
            except NoSuchElementError as e:
                reason = e.reason
            except StaleElementReferenceException:
                reason = "cached element went stale"
                self._cache.invalidate(chain.prefix(1))

            remaining = deadline - anyio.current_time()
            if remaining <= 0:
                raise NoSuchElementError(str(chain), timeout, reason=reason)
            await anyio.sleep(min(self.poll_interval, remaining))

    async def _switch_to_last_window(self) -> None:
        driver = await self._session.get_driver()
        handles = await self._supervisor.call("window_handles", lambda: driver.window_handles)
        if not handles:
            raise NoSuchWindowException("No open browser windows left")
        logger.debug(f"Current window is gone, switching to window {handles[-1]}")
        await self._supervisor.call("switch_to_window", driver.switch_to.window, handles[-1])
        self._cache.clear()
        if self._settle is not None:
            await self._settle()

    async def find_all(self, target: ChainLike) -> list[WebElement]:
        """
        Find every element matching the last node of a chain.

        The chain's prefix is resolved (and cached) as usual; the matches of
        the last node are not cached.
        """
        chain = as_chain(target)
        self.converter.validate(chain)
        driver = await self._session.get_driver()
        root: Union[WebDriver, WebElement] = driver
        if len(chain) > 1:
            parent = await self.resolve(chain.prefix(len(chain) - 1))
            if chain.locators[-2].frame:
                await self._supervisor.call("switch_to_frame", driver.switch_to.frame, parent)
            else:
                root = parent
        by, selector = self.converter.to_by(chain.last)
        return await self._supervisor.call("find_elements", root.find_elements, by, selector)

    async def _resolve_once(self, chain: LocatorChain) -> WebElement:
        # Starting a session resets the cache, so read the generation after
        driver = await self._session.get_driver()
        generation = self._cache.generation

        if not chain.uses_context:
            element = self._cache.get(chain)
            if element is None:
                element = await self._find(driver, chain.last, chain)
                self._cache.put(chain, element, generation)
            return element

        await self._supervisor.call("switch_to_default_content", driver.switch_to.default_content)

        context: Optional[WebElement] = None
        element: Optional[WebElement] = None
        for depth, locator in enumerate(chain, start=1):
            prefix = chain.prefix(depth)
            element = self._cache.get(prefix)
            if element is None:
                element = await self._find(context if context is not None else driver, locator, chain)
                self._cache.put(prefix, element, generation)

            if locator.frame and depth < len(chain):
                logger.log(TRACE, f"Switch to frame element {locator}")
                await self._supervisor.call("switch_to_frame", driver.switch_to.frame, element)
                context = None
            else:
                context = element

        return element

    async def _find(
        self,
        root: Union[WebDriver, WebElement],
        locator: Locator,
        chain: LocatorChain,
    ) -> WebElement:
        by, selector = self.converter.to_by(locator)
        index, target = locator.target()

        elements = await self._supervisor.call("find_elements", root.find_elements, by, selector)
        position = index or 1
        if len(elements) < position:
            reason = f"no match for [{target}]"
            if index:
                reason = f"no match for [{target}] with index [{index}]"
            raise NoSuchElementError(str(chain), reason=reason)
        return elements[position - 1]
