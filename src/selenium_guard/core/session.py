"""Lifecycle of one remote browser session."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, Optional

import anyio
from selenium.webdriver.remote.webdriver import WebDriver

from .driver_factory import SessionBootstrapper

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Where the logical session is in its lifecycle."""

    ABSENT = "absent"
    ACTIVE = "active"
    SOFT_LOST = "soft_lost"
    HARD_LOST = "hard_lost"


class SessionHandle:
    """
    Owns a single remote session: create, validate, close, discard.

    The WebDriver is created lazily on first use and recreated on the next
    use after the session has been lost. Listeners registered with
    ``on_reset`` run whenever the driver reference is dropped or replaced,
    so dependent state (element cache, page-update probe) never outlives
    the session it belongs to.
    """

    def __init__(
        self,
        bootstrapper: SessionBootstrapper,
        default_wait_timeout: float = 10.0,
        command_timeout: float = 30.0,
    ):
        self._bootstrapper = bootstrapper
        # Upper bound for session teardown and liveness checks
        self.command_timeout = command_timeout
        self._driver: Optional[WebDriver] = None
        self._state = SessionState.ABSENT
        self._default_wait_timeout = default_wait_timeout
        self._wait_timeout_stack: list[float] = []
        self._reset_listeners: list[Callable[[], None]] = []
        self.created_at: Optional[float] = None
        self.last_activity: float = time.time()
        # Page-update probe script chosen for this session, None until detected
        self.page_update_script: Optional[str] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def driver(self) -> Optional[WebDriver]:
        """The current WebDriver, or None when no session is active."""
        return self._driver

    @property
    def session_id(self) -> Optional[str]:
        return self._driver.session_id if self._driver is not None else None

    @property
    def is_started(self) -> bool:
        return self._driver is not None

    def on_reset(self, listener: Callable[[], None]) -> None:
        """Register a callback run whenever the session is dropped or recreated."""
        self._reset_listeners.append(listener)

    def touch(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = time.time()

    async def get_driver(self) -> WebDriver:
        """
        Return the active WebDriver, creating a new session if needed.

        Raises:
            GridConnectionError: If a new session cannot be created
        """
        if self._driver is None:
            await self.start()
        self.touch()
        return self._driver

    async def start(self) -> WebDriver:
        """Create a brand-new remote session, replacing any previous reference."""
        previous = self._state
        self._reset()
        self._driver = await self._bootstrapper.create()
        self._state = SessionState.ACTIVE
        self.created_at = time.time()
        self.touch()
        logger.info(f"Session {self._driver.session_id} started (previous state: {previous.value})")
        return self._driver

    async def close(self, lost: bool = False) -> None:
        """
        Close the remote session cleanly.

        Teardown is bounded by ``command_timeout`` and shielded from outer
        cancellation. A session that does not close in time is discarded
        as hard-lost.

        Args:
            lost: Record the session as soft-lost rather than absent
        """
        driver = self._driver
        self._driver = None
        self._reset()
        self._state = SessionState.SOFT_LOST if lost else SessionState.ABSENT
        if driver is None:
            return

        try:
            with anyio.CancelScope(shield=True):
                with anyio.move_on_after(self.command_timeout) as scope:
                    await self._bootstrapper.destroy(driver)
        except Exception as e:
            logger.warning(f"Error closing driver session {driver.session_id}: {e}")
            return

        if scope.cancelled_caught:
            logger.warning(
                f"Session {driver.session_id} did not close within {self.command_timeout}s, discarding it"
            )
            self._state = SessionState.HARD_LOST
            return
        logger.info(f"Closed session {driver.session_id}")

    def hard_close(self) -> None:
        """
        Discard the session reference without talking to the remote side.

        Used when the endpoint is presumed unreachable.
        """
        driver = self._driver
        self._driver = None
        self._reset()
        self._state = SessionState.HARD_LOST
        if driver is not None:
            logger.warning(f"Discarded session {driver.session_id} without closing it")

    def _reset(self) -> None:
        self.page_update_script = None
        for listener in self._reset_listeners:
            listener()

    async def is_alive(self) -> bool:
        """Probe the session with a cheap command; never raises."""
        driver = self._driver
        if driver is None:
            return False
        try:
            with anyio.move_on_after(self.command_timeout):
                await anyio.to_thread.run_sync(lambda: driver.current_url, abandon_on_cancel=True)
                return True
        except Exception as e:
            logger.debug(f"Session liveness probe failed: {e}")
            return False
        logger.debug(f"Session liveness probe timed out after {self.command_timeout}s")
        return False

    @property
    def wait_timeout(self) -> float:
        """Timeout in seconds applied to lookups and waits that don't specify one."""
        if self._wait_timeout_stack:
            return self._wait_timeout_stack[-1]
        return self._default_wait_timeout

    @property
    def default_wait_timeout(self) -> float:
        return self._default_wait_timeout

    def set_waiting_timeout(self, timeout: float) -> None:
        """Override the wait timeout until the matching ``restore_waiting_timeout``."""
        if timeout < 0:
            raise ValueError(f"Waiting timeout must be non-negative, got {timeout}")
        self._wait_timeout_stack.append(timeout)

    def restore_waiting_timeout(self) -> None:
        if self._wait_timeout_stack:
            self._wait_timeout_stack.pop()

    @contextmanager
    def waiting_timeout(self, timeout: float) -> Iterator[None]:
        self.set_waiting_timeout(timeout)
        try:
            yield
        finally:
            self.restore_waiting_timeout()

    @contextmanager
    def without_waiting(self) -> Iterator[None]:
        """Run a block as a zero-wait probe, restoring the timeout on every exit path."""
        with self.waiting_timeout(0):
            yield

    def to_dict(self) -> dict:
        return {
            "state": self._state.value,
            "session_id": self.session_id,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
            "wait_timeout": self.wait_timeout,
        }
