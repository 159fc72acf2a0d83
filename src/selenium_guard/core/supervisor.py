"""Recovery supervision around every outbound transport call."""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import anyio
from selenium.common.exceptions import InvalidElementStateException

from ..config import TRACE
from .classifier import (
    BENIGN_TYPES,
    STALE_TYPES,
    FailureClass,
    classify,
    is_renderer_timeout,
    matching_rule,
)
from .element_cache import ElementCache
from .exceptions import DriverCallTimeoutError, SessionLostError
from .session import SessionHandle, SessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RAISE = object()


class CallTrace:
    """Stack of in-flight supervised operations for one execution context."""

    def __init__(self):
        self._frames: list[str] = []

    def push(self, operation: str) -> None:
        self._frames.append(operation)

    def pop(self) -> Optional[str]:
        if self._frames:
            return self._frames.pop()
        return None

    def clear(self) -> None:
        self._frames.clear()

    @property
    def frames(self) -> tuple[str, ...]:
        return tuple(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    def __str__(self) -> str:
        return "[" + " > ".join(self._frames) + "]"


class RecoverySupervisor:
    """
    Wraps remote calls and applies the recovery action for each failure class.

    Two levels of wrapping are offered:

    - ``call`` wraps a single transport command. It enforces the driver
      operation timeout, serializes commands on the session and turns
      session-loss failures into ``SessionLostError`` after cleanup. Any
      other failure propagates unchanged.
    - ``with_retry`` wraps a whole logical operation (which may issue many
      commands). On top of session-loss handling it retries once after a
      stale element, and swallows ignorable failures when the caller
      supplied a default (probing calls).

    Cleanup (session close/discard, cache clear, state transition) always
    happens before the error reaches the caller.
    """

    def __init__(
        self,
        session: SessionHandle,
        cache: ElementCache,
        call_timeout: float = 0,
        trace: Optional[CallTrace] = None,
        classifier: Callable[[BaseException, Optional[str]], FailureClass] = classify,
    ):
        self.session = session
        self.cache = cache
        self.call_timeout = call_timeout
        self.trace = trace if trace is not None else CallTrace()
        self._classify = classifier
        self._settle: Optional[Callable[[], Awaitable[Any]]] = None
        self._lock = anyio.Lock()

    def set_page_settle(self, settle: Callable[[], Awaitable[Any]]) -> None:
        """Register the coroutine used to wait for the page before a retry."""
        self._settle = settle

    async def call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        """
        Run one transport command under the driver operation timeout.

        Args:
            operation: Command name used for classification (e.g. "get", "click")
            fn: Blocking callable (run in a worker thread) or coroutine function
            *args: Positional arguments for ``fn``

        Raises:
            SessionLostError: If the failure means the session is gone
        """
        self.trace.push(operation)
        logger.log(TRACE, f"call {self.trace} [{self.call_timeout}s]")
        try:
            return await self._invoke(operation, fn, *args)
        except Exception as e:
            self._log_exception(operation, e)
            failure = self._classify(e, operation)
            if failure in (FailureClass.SESSION_LOST_SOFT, FailureClass.SESSION_LOST_HARD):
                await self._handle_session_lost(e, failure)
            if failure is FailureClass.FATAL:
                self.trace.clear()
            raise
        finally:
            self.trace.pop()

    async def _invoke(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        if inspect.iscoroutinefunction(fn):
            runner = functools.partial(fn, *args)
        else:
            runner = functools.partial(self._run_in_thread, fn, *args)

        if self.call_timeout <= 0:
            return await runner()

        with anyio.move_on_after(self.call_timeout):
            return await runner()
        raise DriverCallTimeoutError(operation, self.call_timeout)

    async def _run_in_thread(self, fn: Callable[..., Any], *args: Any) -> Any:
        async with self._lock:
            return await anyio.to_thread.run_sync(
                functools.partial(fn, *args), abandon_on_cancel=True
            )

    async def with_retry(
        self,
        operation: str,
        fn: Callable[..., Any],
        *args: Any,
        default: Any = _RAISE,
    ) -> Any:
        """
        Run a logical operation with full recovery.

        Args:
            operation: Operation name used for classification and logging
            fn: Blocking callable or coroutine function performing the operation
            *args: Positional arguments for ``fn``
            default: Value returned instead of raising for ignorable failures.
                Omit for assertive calls.

        Returns:
            The result of ``fn``, or ``default`` for an ignored failure

        Raises:
            SessionLostError: If the session was lost (already cleaned up)
            Exception: Any other failure, with its original type
        """
        try:
            return await self._attempt(operation, fn, *args)
        except Exception as e:
            failure = self._classify(e, operation)

            if failure is FailureClass.IGNORABLE and default is not _RAISE:
                logger.debug(f"Ignored {type(e).__name__} during {operation}: {e}")
                return default

            if failure is FailureClass.IGNORABLE and is_renderer_timeout(e):
                logger.log(TRACE, f"Renderer timeout during {operation} ignored: {e}")
                self.trace.clear()
                return None if default is _RAISE else default

            if failure is FailureClass.RETRY_SAME_SESSION:
                return await self._retry(operation, e, fn, *args)

            if failure in (FailureClass.SESSION_LOST_SOFT, FailureClass.SESSION_LOST_HARD):
                await self._handle_session_lost(e, failure)

            self.trace.clear()
            raise

    async def _attempt(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        if inspect.iscoroutinefunction(fn):
            return await fn(*args)
        return await self.call(operation, fn, *args)

    async def _retry(
        self,
        operation: str,
        error: Exception,
        fn: Callable[..., Any],
        *args: Any,
    ) -> Any:
        logger.log(TRACE, f"{type(error).__name__} during {operation}, retrying once")
        self.cache.clear()
        if isinstance(error, InvalidElementStateException) and self._settle is not None:
            await self._settle()
        try:
            return await self._attempt(operation, fn, *args)
        except Exception as e:
            failure = self._classify(e, operation)
            if failure in (FailureClass.SESSION_LOST_SOFT, FailureClass.SESSION_LOST_HARD):
                await self._handle_session_lost(e, failure)
            self.trace.clear()
            raise

    async def _handle_session_lost(self, cause: Exception, failure: FailureClass) -> None:
        """Clean up after a lost session and raise ``SessionLostError``."""
        hard = failure is FailureClass.SESSION_LOST_HARD
        if isinstance(cause, SessionLostError) and cause.handled:
            raise cause

        if hard:
            logger.error(f"Hard session lost exception detected: {cause!r}")
            self.session.hard_close()
        else:
            logger.error(f"Session lost exception detected: {cause!r}")
            await self.session.close(lost=True)
            hard = self.session.state is SessionState.HARD_LOST
        self.cache.clear()
        self.trace.clear()

        if isinstance(cause, SessionLostError):
            cause.hard = hard
            cause.handled = True
            raise cause
        error = SessionLostError("Driver session has been lost", cause=cause, hard=hard)
        error.handled = True
        raise error from cause

    def _log_exception(self, operation: str, error: Exception) -> None:
        if isinstance(error, BENIGN_TYPES + STALE_TYPES):
            return
        logger.log(
            TRACE,
            f"Exception during {operation} ({matching_rule(error, operation) or 'fatal'}): {error!r}",
        )
