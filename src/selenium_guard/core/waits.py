"""Deadline-bounded polling of remote conditions."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

import anyio
from selenium.common.exceptions import NoSuchElementException

from ..config import TRACE
from .exceptions import NoSuchElementError, SessionLostError, WaitTimeoutError
from .session import SessionHandle
from .supervisor import RecoverySupervisor

logger = logging.getLogger(__name__)

POLL_FREQUENCY = 0.5
SPLIT_WAIT_MARGIN = 5.0
IGNORED_EXCEPTIONS: tuple[type[Exception], ...] = (NoSuchElementException, NoSuchElementError)

# JavaScript returning true once the page has settled
JQUERY_COMPLETE = (
    "var docReady = window.document.readyState === 'complete';"
    "var hasJQuery = window.jQuery !== undefined;"
    "var isJqueryComplete = hasJQuery ? window.jQuery.active === 0 : true;"
    "var isAnimatedComplete = hasJQuery ? window.jQuery(':animated').length === 0 : true;"
    "return docReady && isJqueryComplete && isAnimatedComplete;"
)

ANGULAR_HTTP_COMPLETE = (
    "var docReady = window.document.readyState === 'complete';"
    "var hasAngular = window.angular !== undefined;"
    "var isAngularCompleted = hasAngular ? "
    "window.angular.element(document).injector().get('$http').pendingRequests.length === 0 : true;"
    "var isAnimatedComplete = hasAngular ? (document.querySelector('.ng-animate') === null) : true;"
    "return docReady && isAngularCompleted && isAnimatedComplete;"
)

DOC_READY_STATE_COMPLETE = "return window.document.readyState === 'complete';"

HAS_JQUERY = "return window.jQuery !== undefined;"
HAS_ANGULAR = "return window.angular !== undefined;"

# Sentinel for pages where not even readyState can be probed
NOOP_PAGE_UPDATE = ""


def script_result_is_true(result: Any) -> bool:
    return result is None or str(result).lower() == "true"


@dataclass(frozen=True)
class WaitSpec:
    """
    How long and how often to poll.

    A zero timeout checks the condition exactly once.
    """

    timeout: float
    poll_interval: float = POLL_FREQUENCY
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ValueError(f"Wait timeout must be non-negative, got {self.timeout}")
        if self.poll_interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.poll_interval}")


class WaitEngine:
    """
    Polls conditions until they return a truthy value or the deadline passes.

    Each bounded wait runs as one supervised call, so it is subject to the
    driver operation timeout. Waits longer than that timeout minus the
    safety margin are split into consecutive sub-waits of
    ``call_timeout - split_margin`` seconds plus a final partial wait for the remainder, which keeps a
    legitimately long wait from being mistaken for a wedged session.
    """

    def __init__(
        self,
        session: SessionHandle,
        supervisor: RecoverySupervisor,
        call_timeout: float = 0,
        split_margin: float = SPLIT_WAIT_MARGIN,
        poll_interval: float = POLL_FREQUENCY,
        page_load_timeout: float = 30.0,
        fail_on_page_load_timeout: bool = True,
        ignored_exceptions: tuple[type[Exception], ...] = IGNORED_EXCEPTIONS,
    ):
        self._session = session
        self._supervisor = supervisor
        self.call_timeout = call_timeout
        self.split_margin = split_margin
        self.poll_interval = poll_interval
        self.page_load_timeout = page_load_timeout
        self.fail_on_page_load_timeout = fail_on_page_load_timeout
        self.ignored_exceptions = ignored_exceptions
        self._custom_page_update_script: Optional[str] = None

    def spec(self, timeout: Optional[float] = None, message: Optional[str] = None) -> WaitSpec:
        """Build a WaitSpec using the session wait timeout and engine poll interval."""
        if timeout is None:
            timeout = self._session.wait_timeout
        return WaitSpec(timeout=timeout, poll_interval=self.poll_interval, message=message)

    async def wait_for(self, condition: Callable[[], Any], spec: Optional[WaitSpec] = None) -> Any:
        """
        Wait until ``condition`` returns a truthy value.

        Args:
            condition: Zero-argument callable or coroutine function. Blocking
                callables run as supervised transport calls.
            spec: Timeout, poll interval and failure message

        Returns:
            The first truthy value returned by ``condition``

        Raises:
            WaitTimeoutError: If the deadline passes first
            SessionLostError: If the session was lost while waiting
        """
        spec = spec or self.spec()
        if self.needs_split(spec.timeout):
            return await self._split_wait(condition, spec)
        return await self._perform_wait(condition, spec)

    def needs_split(self, timeout: float) -> bool:
        """
        True when a wait of ``timeout`` seconds must be split.

        Waits reaching into the safety margin below the ceiling are split
        too, since their final condition check could otherwise overrun it.
        """
        if self.call_timeout <= 0:
            return False
        part, _, _ = self.partition(timeout)
        return timeout > part

    def partition(self, timeout: float) -> tuple[float, int, float]:
        """
        Split ``timeout`` into (part, count, remainder) for a split wait.

        Computed in whole milliseconds so the parts add up exactly.
        """
        ceiling_ms = round(self.call_timeout * 1000)
        part_ms = ceiling_ms - round(self.split_margin * 1000)
        if part_ms <= 0:
            part_ms = max(ceiling_ms // 2, 1)
        timeout_ms = round(timeout * 1000)
        count, delta_ms = divmod(timeout_ms, part_ms)
        return part_ms / 1000, count, delta_ms / 1000

    async def _split_wait(self, condition: Callable[[], Any], spec: WaitSpec) -> Any:
        part, count, delta = self.partition(spec.timeout)
        logger.log(TRACE, f"Split wait of {spec.timeout}s into {count} x {part}s + {delta}s")

        for _ in range(count):
            try:
                return await self._perform_wait(condition, replace(spec, timeout=part))
            except WaitTimeoutError:
                continue

        if delta > 0:
            try:
                return await self._perform_wait(condition, replace(spec, timeout=delta))
            except WaitTimeoutError as e:
                raise WaitTimeoutError(spec.message, spec.timeout) from e
        raise WaitTimeoutError(spec.message, spec.timeout)

    async def _perform_wait(self, condition: Callable[[], Any], spec: WaitSpec) -> Any:
        return await self._supervisor.call("wait_until", self._poll, condition, spec)

    async def _poll(self, condition: Callable[[], Any], spec: WaitSpec) -> Any:
        deadline = anyio.current_time() + spec.timeout
        last_error: Optional[Exception] = None
        while True:
            try:
                value = await self._evaluate(condition)
                if value:
                    return value
            except self.ignored_exceptions as e:
                last_error = e

            remaining = deadline - anyio.current_time()
            if remaining <= 0:
                raise WaitTimeoutError(spec.message, spec.timeout) from last_error
            await anyio.sleep(min(spec.poll_interval, remaining))

    async def _evaluate(self, condition: Callable[[], Any]) -> Any:
        if inspect.iscoroutinefunction(condition):
            return await condition()
        return await self._supervisor.call("condition", condition)

    def script_condition(self, script: str) -> Callable[[], Any]:
        """Condition that is met when ``script`` returns true (or nothing)."""

        async def check() -> bool:
            driver = await self._session.get_driver()
            result = await self._supervisor.call("execute_script", driver.execute_script, script)
            return script_result_is_true(result)

        return check

    def set_page_update_script(self, script: str) -> None:
        """Use ``script`` to detect page updates instead of auto-detection."""
        self._custom_page_update_script = script
        self._session.page_update_script = script

    async def wait_for_page_update(self, timeout: Optional[float] = None) -> None:
        """
        Wait for the page to settle (document ready, no pending ajax).

        A timeout raises unless ``fail_on_page_load_timeout`` is off, in
        which case it is only logged. Session loss always propagates.
        """
        if timeout is None:
            timeout = self.page_load_timeout
        script = await self._page_update_script()
        if script == NOOP_PAGE_UPDATE:
            return

        spec = WaitSpec(
            timeout=timeout,
            poll_interval=self.poll_interval,
            message=f"page to finish loading within {timeout}s",
        )
        try:
            await self.wait_for(self.script_condition(script), spec)
        except SessionLostError:
            raise
        except Exception as e:
            if self.fail_on_page_load_timeout:
                raise
            logger.warning(f"Error while waiting for page update: {e}")

    async def _page_update_script(self) -> str:
        if self._session.page_update_script is None:
            if self._custom_page_update_script is not None:
                self._session.page_update_script = self._custom_page_update_script
            else:
                self._session.page_update_script = await self.detect_page_update_script()
        return self._session.page_update_script

    async def detect_page_update_script(self) -> str:
        """Pick the best page-update probe for the current page."""
        if await self._probe(HAS_JQUERY):
            logger.debug("jQuery detected")
            if await self._script_works(JQUERY_COMPLETE):
                return JQUERY_COMPLETE

        if await self._probe(HAS_ANGULAR):
            logger.debug("Angular detected")
            if await self._script_works(ANGULAR_HTTP_COMPLETE):
                logger.debug("Angular http waiter supported")
                return ANGULAR_HTTP_COMPLETE

        try:
            await self._perform_wait(
                self.script_condition(DOC_READY_STATE_COMPLETE),
                WaitSpec(timeout=1.0, poll_interval=self.poll_interval),
            )
            logger.debug("Using default page load waiter")
            return DOC_READY_STATE_COMPLETE
        except SessionLostError:
            raise
        except Exception as e:
            logger.debug(f"Using noop page load waiter: {e}")
            return NOOP_PAGE_UPDATE

    async def _probe(self, script: str) -> bool:
        try:
            driver = await self._session.get_driver()
            result = await self._supervisor.call("execute_script", driver.execute_script, script)
            return script_result_is_true(result)
        except SessionLostError:
            raise
        except Exception as e:
            logger.debug(f"Could not run probe script: {e}")
            return False

    async def _script_works(self, script: str) -> bool:
        try:
            driver = await self._session.get_driver()
            await self._supervisor.call("execute_script", driver.execute_script, script)
            return True
        except SessionLostError:
            raise
        except Exception as e:
            logger.warning(f"Provided waiting script doesn't work: {e}")
            return False
