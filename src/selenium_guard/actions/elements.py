"""Element interactions over locator chains."""

from typing import Literal, Optional

from selenium.webdriver.common.keys import Keys
from selenium.webdriver.support.ui import Select

from ..core.context import BrowserContext, get_current_context
from ..core.resolver import ChainLike

# Key name mapping
KEY_MAP = {
    "ENTER": Keys.ENTER,
    "RETURN": Keys.RETURN,
    "TAB": Keys.TAB,
    "ESCAPE": Keys.ESCAPE,
    "ESC": Keys.ESCAPE,
    "BACKSPACE": Keys.BACKSPACE,
    "DELETE": Keys.DELETE,
    "SPACE": Keys.SPACE,
    "UP": Keys.UP,
    "DOWN": Keys.DOWN,
    "LEFT": Keys.LEFT,
    "RIGHT": Keys.RIGHT,
    "HOME": Keys.HOME,
    "END": Keys.END,
    "PAGE_UP": Keys.PAGE_UP,
    "PAGE_DOWN": Keys.PAGE_DOWN,
}

SCROLL_INTO_VIEW = "arguments[0].scrollIntoView({block: '%s'});"


def get_context(context: Optional[BrowserContext] = None) -> BrowserContext:
    """Use the given context, or the one bound to the running task."""
    return context if context is not None else get_current_context()


async def scroll_into_view(
    target: ChainLike,
    align_to: Literal["top", "center", "bottom"] = "center",
    context: Optional[BrowserContext] = None,
) -> None:
    """Scroll the element into the visible viewport."""
    ctx = get_context(context)
    block = {"top": "start", "center": "center", "bottom": "end"}[align_to]

    async def perform() -> None:
        element = await ctx.resolve(target)
        driver = await ctx.driver()
        await ctx.call("execute_script", driver.execute_script, SCROLL_INTO_VIEW % block, element)

    await ctx.with_retry("scroll_into_view", perform)


async def click(target: ChainLike, context: Optional[BrowserContext] = None) -> None:
    """
    Click an element.

    Automatically scrolls the element into view before clicking. A stale
    element is re-resolved and the click retried once.
    """
    ctx = get_context(context)

    async def perform() -> None:
        element = await ctx.resolve(target)
        driver = await ctx.driver()
        await ctx.call("execute_script", driver.execute_script, SCROLL_INTO_VIEW % "center", element)
        await ctx.call("click", lambda: element.click())

    await ctx.with_retry("click", perform)


async def send_keys(
    target: ChainLike,
    text: str,
    clear_first: bool = False,
    context: Optional[BrowserContext] = None,
) -> None:
    """
    Type text into an input element.

    Args:
        target: Locator chain of the input
        text: Text to type
        clear_first: Whether to clear existing content first
        context: Browser context; defaults to the current one
    """
    ctx = get_context(context)

    async def perform() -> None:
        element = await ctx.resolve(target)
        if clear_first:
            await ctx.call("clear", lambda: element.clear())
        await ctx.call("send_keys", lambda: element.send_keys(text))

    await ctx.with_retry("send_keys", perform)


async def press_key(target: ChainLike, key: str, context: Optional[BrowserContext] = None) -> None:
    """Send a named key (ENTER, TAB, ...) to an element."""
    key_value = KEY_MAP.get(key.upper())
    if key_value is None:
        raise ValueError(f"Unknown key: {key}. Supported keys: {', '.join(KEY_MAP)}")
    await send_keys(target, key_value, context=context)


async def clear(target: ChainLike, context: Optional[BrowserContext] = None) -> None:
    ctx = get_context(context)

    async def perform() -> None:
        element = await ctx.resolve(target)
        await ctx.call("clear", lambda: element.clear())

    await ctx.with_retry("clear", perform)


async def text(target: ChainLike, context: Optional[BrowserContext] = None) -> str:
    """Visible text of an element."""
    ctx = get_context(context)

    async def perform() -> str:
        element = await ctx.resolve(target)
        return await ctx.call("get_text", lambda: element.text)

    return await ctx.with_retry("get_text", perform)


async def attribute(
    target: ChainLike,
    name: str,
    context: Optional[BrowserContext] = None,
) -> Optional[str]:
    ctx = get_context(context)

    async def perform() -> Optional[str]:
        element = await ctx.resolve(target)
        return await ctx.call("get_attribute", element.get_attribute, name)

    return await ctx.with_retry("get_attribute", perform)


async def set_checked(
    target: ChainLike,
    checked: bool,
    context: Optional[BrowserContext] = None,
) -> bool:
    """
    Set the checked state of a checkbox or radio button.

    Only clicks if the current state differs from desired.

    Returns:
        Whether a click was needed
    """
    ctx = get_context(context)

    async def perform() -> bool:
        element = await ctx.resolve(target)
        is_selected = await ctx.call("is_selected", lambda: element.is_selected())
        if is_selected != checked:
            await ctx.call("click", lambda: element.click())
            return True
        return False

    return await ctx.with_retry("set_checked", perform)


async def select_option(
    target: ChainLike,
    value: str,
    by: Literal["visible_text", "value", "index"] = "visible_text",
    context: Optional[BrowserContext] = None,
) -> None:
    """Select an option from a dropdown/select element."""
    ctx = get_context(context)

    async def perform() -> None:
        element = await ctx.resolve(target)
        select = await ctx.call("select", Select, element)
        if by == "visible_text":
            await ctx.call("select", lambda: select.select_by_visible_text(value))
        elif by == "value":
            await ctx.call("select", lambda: select.select_by_value(value))
        elif by == "index":
            await ctx.call("select", lambda: select.select_by_index(int(value)))
        else:
            raise ValueError(f"Unknown option selector: {by}")

    await ctx.with_retry("select", perform)


async def is_displayed(target: ChainLike, context: Optional[BrowserContext] = None) -> bool:
    """
    Check right now whether an element is displayed.

    A zero-wait probe: a missing element yields False instead of raising.
    """
    ctx = get_context(context)

    async def perform() -> bool:
        with ctx.without_waiting():
            element = await ctx.resolve(target)
        return await ctx.call("is_displayed", lambda: element.is_displayed())

    return await ctx.with_retry("is_displayed", perform, default=False)


async def exists(target: ChainLike, context: Optional[BrowserContext] = None) -> bool:
    """Check right now whether an element is present in the DOM."""
    ctx = get_context(context)

    async def perform() -> bool:
        with ctx.without_waiting():
            await ctx.resolve(target)
        return True

    return await ctx.with_retry("exists", perform, default=False)
