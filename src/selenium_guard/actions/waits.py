"""Element and page wait conditions, with quiet (boolean) variants."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from selenium.common.exceptions import NoAlertPresentException, StaleElementReferenceException
from selenium.webdriver.common.alert import Alert
from selenium.webdriver.remote.webelement import WebElement

from ..core.context import BrowserContext
from ..core.exceptions import NoSuchElementError, WaitTimeoutError
from ..core.resolver import ChainLike, as_chain
from .elements import get_context

logger = logging.getLogger(__name__)

ElementPredicate = Callable[[WebElement], Awaitable[bool]]


def _element_condition(
    ctx: BrowserContext,
    target: ChainLike,
    predicate: ElementPredicate,
) -> Callable[[], Awaitable[Optional[WebElement]]]:
    """
    Condition returning the element once ``predicate`` holds for it.

    Each check resolves the chain without waiting. A stale element drops
    its cache entries so the next check finds it again.
    """
    chain = as_chain(target)

    async def check() -> Optional[WebElement]:
        with ctx.without_waiting():
            element = await ctx.resolve(chain)
        try:
            if await predicate(element):
                return element
        except StaleElementReferenceException:
            ctx.cache.invalidate(chain)
        return None

    return check


async def wait_for_condition(
    condition: Callable[[], Any],
    timeout: Optional[float] = None,
    message: Optional[str] = None,
    context: Optional[BrowserContext] = None,
) -> Any:
    """
    Wait until an arbitrary condition returns a truthy value.

    Raises:
        WaitTimeoutError: If the condition is not met in time
    """
    ctx = get_context(context)
    return await ctx.wait_for(condition, ctx.waits.spec(timeout, message))


async def wait_until_exists(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    """Wait for an element to be present in the DOM (may not be visible)."""
    ctx = get_context(context)

    async def present(element: WebElement) -> bool:
        return True

    return await ctx.wait_for(
        _element_condition(ctx, target, present),
        ctx.waits.spec(timeout, f"presence of element {as_chain(target)}"),
    )


async def wait_until_visible(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    """Wait for an element to be present and visible."""
    ctx = get_context(context)

    async def visible(element: WebElement) -> bool:
        return await ctx.call("is_displayed", lambda: element.is_displayed())

    return await ctx.wait_for(
        _element_condition(ctx, target, visible),
        ctx.waits.spec(timeout, f"visibility of element {as_chain(target)}"),
    )


async def wait_until_clickable(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    """Wait for an element to be visible and enabled."""
    ctx = get_context(context)

    async def clickable(element: WebElement) -> bool:
        displayed = await ctx.call("is_displayed", lambda: element.is_displayed())
        return displayed and await ctx.call("is_enabled", lambda: element.is_enabled())

    return await ctx.wait_for(
        _element_condition(ctx, target, clickable),
        ctx.waits.spec(timeout, f"element {as_chain(target)} to be clickable"),
    )


async def wait_until_not_visible(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> bool:
    """Wait for an element to be hidden or absent."""
    ctx = get_context(context)
    chain = as_chain(target)

    async def hidden() -> bool:
        try:
            with ctx.without_waiting():
                element = await ctx.resolve(chain)
            return not await ctx.call("is_displayed", lambda: element.is_displayed())
        except (NoSuchElementError, StaleElementReferenceException):
            ctx.cache.invalidate(chain)
            return True

    return await ctx.wait_for(hidden, ctx.waits.spec(timeout, f"invisibility of element {chain}"))


async def wait_until_selected(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    ctx = get_context(context)

    async def selected(element: WebElement) -> bool:
        return await ctx.call("is_selected", lambda: element.is_selected())

    return await ctx.wait_for(
        _element_condition(ctx, target, selected),
        ctx.waits.spec(timeout, f"element {as_chain(target)} to be selected"),
    )


async def wait_until_not_selected(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    ctx = get_context(context)

    async def not_selected(element: WebElement) -> bool:
        return not await ctx.call("is_selected", lambda: element.is_selected())

    return await ctx.wait_for(
        _element_condition(ctx, target, not_selected),
        ctx.waits.spec(timeout, f"element {as_chain(target)} to not be selected"),
    )


async def wait_until_attribute_equals(
    target: ChainLike,
    name: str,
    value: str,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    ctx = get_context(context)

    async def equals(element: WebElement) -> bool:
        return await ctx.call("get_attribute", element.get_attribute, name) == value

    return await ctx.wait_for(
        _element_condition(ctx, target, equals),
        ctx.waits.spec(timeout, f"attribute [{name}] of element {as_chain(target)} to be [{value}]"),
    )


async def wait_until_attribute_contains(
    target: ChainLike,
    name: str,
    value: str,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    ctx = get_context(context)

    async def contains(element: WebElement) -> bool:
        actual = await ctx.call("get_attribute", element.get_attribute, name)
        return actual is not None and value in actual

    return await ctx.wait_for(
        _element_condition(ctx, target, contains),
        ctx.waits.spec(
            timeout, f"attribute [{name}] of element {as_chain(target)} to contain [{value}]"
        ),
    )


async def wait_until_attribute_not_empty(
    target: ChainLike,
    name: str,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> WebElement:
    ctx = get_context(context)

    async def not_empty(element: WebElement) -> bool:
        return bool(await ctx.call("get_attribute", element.get_attribute, name))

    return await ctx.wait_for(
        _element_condition(ctx, target, not_empty),
        ctx.waits.spec(timeout, f"attribute [{name}] of element {as_chain(target)} to not be empty"),
    )


async def wait_until_url_equals(
    url: str,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> str:
    """Wait for the current URL to equal ``url``."""
    ctx = get_context(context)

    async def url_matches() -> Optional[str]:
        driver = await ctx.driver()
        current = await ctx.call("current_url", lambda: driver.current_url)
        return current if current == url else None

    return await ctx.wait_for(url_matches, ctx.waits.spec(timeout, f"url to be [{url}]"))


async def wait_until_alert_present(
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> Alert:
    ctx = get_context(context)

    async def alert_present() -> Optional[Alert]:
        driver = await ctx.driver()
        try:
            return await ctx.call("switch_to_alert", lambda: driver.switch_to.alert)
        except NoAlertPresentException:
            return None

    return await ctx.wait_for(alert_present, ctx.waits.spec(timeout, "alert to be present"))


async def _quietly(wait: Awaitable[Any]) -> bool:
    try:
        await wait
        return True
    except WaitTimeoutError as e:
        logger.debug(f"Quiet wait gave up: {e}")
        return False


async def is_visible(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> bool:
    """Wait for visibility, returning False instead of raising on timeout."""
    return await _quietly(wait_until_visible(target, timeout, context))


async def is_not_visible(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> bool:
    return await _quietly(wait_until_not_visible(target, timeout, context))


async def is_clickable(
    target: ChainLike,
    timeout: Optional[float] = None,
    context: Optional[BrowserContext] = None,
) -> bool:
    return await _quietly(wait_until_clickable(target, timeout, context))
