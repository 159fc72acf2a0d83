"""Page-level navigation and scripting."""

from typing import Any, Optional

from ..core.context import BrowserContext
from .elements import get_context


async def navigate(
    url: str,
    wait_for_page: bool = True,
    context: Optional[BrowserContext] = None,
) -> str:
    """
    Navigate to a URL.

    Elements cached for the previous page are dropped. Any failure of the
    navigation command itself discards the session (hard loss), since a
    half-loaded session cannot be trusted.

    Args:
        url: URL to navigate to
        wait_for_page: Wait for the page to settle after loading
        context: Browser context; defaults to the current one

    Returns:
        The URL after navigation (may differ due to redirects)
    """
    ctx = get_context(context)
    driver = await ctx.driver()
    await ctx.with_retry("get", driver.get, url)
    ctx.clear_cache()
    if wait_for_page:
        await ctx.wait_for_page_update()
    return await current_url(ctx)


async def refresh(wait_for_page: bool = True, context: Optional[BrowserContext] = None) -> None:
    ctx = get_context(context)
    driver = await ctx.driver()
    await ctx.with_retry("refresh", driver.refresh)
    ctx.clear_cache()
    if wait_for_page:
        await ctx.wait_for_page_update()


async def back(context: Optional[BrowserContext] = None) -> None:
    ctx = get_context(context)
    driver = await ctx.driver()
    await ctx.with_retry("back", driver.back)
    ctx.clear_cache()


async def current_url(context: Optional[BrowserContext] = None) -> str:
    ctx = get_context(context)
    driver = await ctx.driver()
    return await ctx.with_retry("current_url", lambda: driver.current_url)


async def title(context: Optional[BrowserContext] = None) -> str:
    ctx = get_context(context)
    driver = await ctx.driver()
    return await ctx.with_retry("title", lambda: driver.title)


async def execute_script(script: str, *args: Any, context: Optional[BrowserContext] = None) -> Any:
    """
    Execute JavaScript in the page.

    Args:
        script: JavaScript code (use ``return`` to produce a value)
        *args: Arguments passed as ``arguments[i]``; WebElements are allowed
        context: Browser context; defaults to the current one
    """
    ctx = get_context(context)
    driver = await ctx.driver()
    return await ctx.with_retry("execute_script", driver.execute_script, script, *args)


async def switch_to_default_content(context: Optional[BrowserContext] = None) -> None:
    """Leave any frame and return to the top-level document."""
    ctx = get_context(context)
    driver = await ctx.driver()
    await ctx.call("switch_to_default_content", driver.switch_to.default_content)
