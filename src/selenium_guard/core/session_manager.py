"""Registry of named browser contexts with expiry sweeping."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Optional

from .context import BrowserContext, current_context
from .exceptions import SessionLimitError, SessionNotFoundError

logger = logging.getLogger(__name__)

ContextFactory = Callable[[str], BrowserContext]


class SessionManager:
    """
    Coroutine-safe registry of named BrowserContexts.

    Several independent sessions can be open at once (e.g. two users in a
    chat test); ``switch_to`` binds one of them to the current execution
    context so that unqualified calls go to it.
    """

    def __init__(
        self,
        context_factory: Optional[ContextFactory] = None,
        max_sessions: int = 10,
        max_lifetime_seconds: int = 900,
        max_idle_seconds: int = 300,
    ):
        self._context_factory = context_factory or (lambda name: BrowserContext.from_settings(name=name))
        self._max_sessions = max_sessions
        self._max_lifetime_seconds = max_lifetime_seconds
        self._max_idle_seconds = max_idle_seconds
        self._contexts: Dict[str, BrowserContext] = {}
        self._registered_at: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def open(self, name: str) -> BrowserContext:
        """
        Get the context registered under ``name``, creating it if needed.

        The remote session itself is started lazily on first use.

        Raises:
            SessionLimitError: If max sessions reached
        """
        async with self._lock:
            context = self._contexts.get(name)
            if context is not None:
                context.session.touch()
                return context

            if len(self._contexts) >= self._max_sessions:
                raise SessionLimitError(self._max_sessions)

            context = self._context_factory(name)
            self._contexts[name] = context
            self._registered_at[name] = time.time()
            logger.info(f"Registered browser context {name}")
            return context

    def get(self, name: str) -> BrowserContext:
        """
        Get a registered context by name.

        Raises:
            SessionNotFoundError: If no context has that name
        """
        context = self._contexts.get(name)
        if context is None:
            raise SessionNotFoundError(name)
        context.session.touch()
        return context

    async def switch_to(self, name: str) -> BrowserContext:
        """Make ``name`` the current context for this execution context."""
        context = await self.open(name)
        current_context.set(context)
        logger.debug(f"Switched to browser context {name}")
        return context

    async def close(self, name: str) -> bool:
        """
        Close a context's session and forget it.

        Returns:
            True if the context was closed, False if not found
        """
        async with self._lock:
            context = self._contexts.pop(name, None)
            self._registered_at.pop(name, None)
            if context is None:
                return False

        try:
            await context.close()
        except Exception as e:
            logger.warning(f"Error closing browser context {name}: {e}")
        if current_context.get() is context:
            current_context.set(None)
        logger.info(f"Closed browser context {name}")
        return True

    def list_sessions(self) -> list[dict]:
        return [context.to_dict() for context in self._contexts.values()]

    def get_expired(self) -> list[str]:
        """
        Find contexts that have exceeded lifetime or idle limits.

        Returns:
            List of expired context names
        """
        now = time.time()
        expired = []

        for name, context in self._contexts.items():
            session = context.session
            age = now - (session.created_at or self._registered_at.get(name, now))
            idle = now - session.last_activity

            if age > self._max_lifetime_seconds:
                logger.info(f"Context {name} exceeded max lifetime ({age:.0f}s)")
                expired.append(name)
            elif idle > self._max_idle_seconds:
                logger.info(f"Context {name} exceeded max idle time ({idle:.0f}s)")
                expired.append(name)

        return expired

    async def sweep_expired(self) -> int:
        """Close all expired contexts. Returns number closed."""
        count = 0
        for name in self.get_expired():
            if await self.close(name):
                count += 1
        return count

    async def close_all(self) -> int:
        """Close all contexts (for shutdown). Returns number closed."""
        count = 0
        for name in list(self._contexts):
            if await self.close(name):
                count += 1
        logger.info(f"Closed all {count} browser contexts")
        return count

    @property
    def session_count(self) -> int:
        return len(self._contexts)

    def __contains__(self, name: str) -> bool:
        return name in self._contexts


class SessionSweeper:
    """Background task that periodically closes expired contexts."""

    def __init__(self, session_manager: SessionManager, interval_seconds: float = 60):
        self._session_manager = session_manager
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start the sweeper background task."""
        self._shutdown_event.clear()
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Session sweeper started (interval: {self._interval}s)")

    async def stop(self) -> None:
        """Stop the sweeper gracefully."""
        if self._task:
            self._shutdown_event.set()
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Session sweeper stopped")

    async def _sweep_loop(self) -> None:
        while not self._shutdown_event.is_set():
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                try:
                    swept = await self._session_manager.sweep_expired()
                    if swept > 0:
                        logger.info(f"Swept {swept} expired context(s)")
                except Exception as e:
                    logger.error(f"Error during session sweep: {e}")
