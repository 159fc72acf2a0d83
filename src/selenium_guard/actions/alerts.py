"""Handling of JavaScript alert, confirm and prompt dialogs."""

import logging
from typing import Optional

from selenium.webdriver.common.alert import Alert

from ..core.context import BrowserContext
from .elements import get_context

logger = logging.getLogger(__name__)


class AlertHandler:
    """
    Operations on the currently open browser dialog.

    ``is_displayed`` is a probe and never raises for a missing dialog; the
    other operations raise ``NoAlertPresentException`` when none is open.
    """

    def __init__(self, context: Optional[BrowserContext] = None):
        self._context = context

    @property
    def context(self) -> BrowserContext:
        return get_context(self._context)

    async def _alert(self) -> Alert:
        ctx = self.context
        driver = await ctx.driver()
        return await ctx.call("switch_to_alert", lambda: driver.switch_to.alert)

    async def is_displayed(self) -> bool:
        return await self.context.with_retry("switch_to_alert", self._alert_open, default=False)

    async def _alert_open(self) -> bool:
        await self._alert()
        return True

    async def accept(self) -> None:
        ctx = self.context
        alert = await self._alert()
        await ctx.call("accept_alert", alert.accept)
        logger.debug("Alert accepted")

    async def dismiss(self) -> None:
        ctx = self.context
        alert = await self._alert()
        await ctx.call("dismiss_alert", alert.dismiss)
        logger.debug("Alert dismissed")

    async def send_keys(self, text: str) -> None:
        """Type into a prompt dialog."""
        ctx = self.context
        alert = await self._alert()
        await ctx.call("send_alert_text", alert.send_keys, text)

    async def text(self) -> str:
        ctx = self.context
        alert = await self._alert()
        return await ctx.call("get_alert_text", lambda: alert.text)
