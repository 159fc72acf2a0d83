"""Unit tests for SessionManager and SessionSweeper."""

import time

import anyio
import pytest

from selenium_guard.core.context import BrowserContext, current_context
from selenium_guard.core.exceptions import SessionLimitError, SessionNotFoundError
from selenium_guard.core.session_manager import SessionManager, SessionSweeper


@pytest.fixture
def session_manager(mock_driver_factory):
    """Create SessionManager with mocked driver factory."""
    return SessionManager(
        context_factory=lambda name: BrowserContext(mock_driver_factory, name=name),
        max_sessions=5,
        max_lifetime_seconds=900,
        max_idle_seconds=300,
    )


class TestSessionManager:
    """Tests for SessionManager."""

    @pytest.mark.asyncio
    async def test_open_registers_context(self, session_manager, mock_driver_factory):
        """Should register a context without starting a remote session."""
        context = await session_manager.open("alice")

        assert context.name == "alice"
        assert "alice" in session_manager
        assert session_manager.session_count == 1
        mock_driver_factory.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_open_existing_returns_same_context(self, session_manager):
        first = await session_manager.open("alice")
        second = await session_manager.open("alice")

        assert first is second
        assert session_manager.session_count == 1

    @pytest.mark.asyncio
    async def test_limit_reached(self, mock_driver_factory):
        """Should raise SessionLimitError when max reached."""
        manager = SessionManager(
            context_factory=lambda name: BrowserContext(mock_driver_factory, name=name),
            max_sessions=1,
        )
        await manager.open("alice")

        with pytest.raises(SessionLimitError) as exc:
            await manager.open("bob")

        assert "1" in str(exc.value)

    @pytest.mark.asyncio
    async def test_get(self, session_manager):
        context = await session_manager.open("alice")

        assert session_manager.get("alice") is context

    def test_get_not_found(self, session_manager):
        """Should raise SessionNotFoundError for unknown name."""
        with pytest.raises(SessionNotFoundError) as exc:
            session_manager.get("unknown")

        assert "unknown" in str(exc.value)

    @pytest.mark.asyncio
    async def test_switch_to_binds_current_context(self, session_manager):
        alice = await session_manager.switch_to("alice")
        assert current_context.get() is alice

        bob = await session_manager.switch_to("bob")
        assert current_context.get() is bob
        assert alice.session is not bob.session

    @pytest.mark.asyncio
    async def test_close_quits_started_session(self, session_manager, mock_driver_factory):
        context = await session_manager.open("alice")
        await context.driver()

        closed = await session_manager.close("alice")

        assert closed is True
        assert session_manager.session_count == 0
        mock_driver_factory.destroy.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_unbinds_current_context(self, session_manager):
        await session_manager.switch_to("alice")

        await session_manager.close("alice")

        assert current_context.get() is None

    @pytest.mark.asyncio
    async def test_close_not_found(self, session_manager):
        assert await session_manager.close("unknown") is False

    def test_list_sessions_empty(self, session_manager):
        assert session_manager.list_sessions() == []

    @pytest.mark.asyncio
    async def test_list_sessions(self, session_manager):
        await session_manager.open("alice")

        sessions = session_manager.list_sessions()

        assert len(sessions) == 1
        assert sessions[0]["name"] == "alice"
        assert sessions[0]["state"] == "absent"

    @pytest.mark.asyncio
    async def test_close_all(self, session_manager):
        await session_manager.open("alice")
        await session_manager.open("bob")

        closed = await session_manager.close_all()

        assert closed == 2
        assert session_manager.session_count == 0


class TestExpiry:
    """Tests for lifetime and idle expiry."""

    @pytest.mark.asyncio
    async def test_idle_context_expires(self, session_manager):
        context = await session_manager.open("alice")
        context.session.last_activity = time.time() - 301

        assert session_manager.get_expired() == ["alice"]

    @pytest.mark.asyncio
    async def test_old_session_expires(self, session_manager):
        context = await session_manager.open("alice")
        await context.driver()
        context.session.created_at = time.time() - 901

        assert session_manager.get_expired() == ["alice"]

    @pytest.mark.asyncio
    async def test_sweep_expired(self, session_manager):
        stale = await session_manager.open("stale")
        await session_manager.open("fresh")
        stale.session.last_activity = time.time() - 301

        swept = await session_manager.sweep_expired()

        assert swept == 1
        assert "stale" not in session_manager
        assert "fresh" in session_manager


class TestSessionSweeper:
    @pytest.mark.asyncio
    async def test_sweeper_closes_expired(self, session_manager):
        context = await session_manager.open("alice")
        context.session.last_activity = time.time() - 301
        sweeper = SessionSweeper(session_manager, interval_seconds=0.01)

        await sweeper.start()
        await anyio.sleep(0.1)
        await sweeper.stop()

        assert session_manager.session_count == 0
