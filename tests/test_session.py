"""Unit tests for SessionHandle lifecycle and wait-timeout overrides."""

import time

import anyio
import pytest
from unittest.mock import MagicMock, PropertyMock

from selenium_guard.core.session import SessionHandle, SessionState


class TestSessionLifecycle:
    """Tests for session start, close and discard."""

    def test_new_handle_is_absent(self, session):
        assert session.state is SessionState.ABSENT
        assert session.driver is None
        assert session.is_started is False

    @pytest.mark.asyncio
    async def test_get_driver_starts_lazily(self, session, mock_driver_factory, mock_webdriver):
        driver = await session.get_driver()

        assert driver is mock_webdriver
        assert session.state is SessionState.ACTIVE
        assert session.session_id == "mock-session-id"
        mock_driver_factory.create.assert_called_once()

    @pytest.mark.asyncio
    async def test_get_driver_reuses_session(self, session, mock_driver_factory):
        await session.get_driver()
        await session.get_driver()

        mock_driver_factory.create.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_destroys_driver(self, session, mock_driver_factory, mock_webdriver):
        await session.get_driver()

        await session.close()

        mock_driver_factory.destroy.assert_called_once_with(mock_webdriver)
        assert session.state is SessionState.ABSENT
        assert session.driver is None

    @pytest.mark.asyncio
    async def test_close_lost_marks_soft_lost(self, session):
        await session.get_driver()

        await session.close(lost=True)

        assert session.state is SessionState.SOFT_LOST

    @pytest.mark.asyncio
    async def test_close_survives_destroy_failure(self, session, mock_driver_factory):
        mock_driver_factory.destroy.side_effect = RuntimeError("node gone")
        await session.get_driver()

        await session.close(lost=True)

        assert session.state is SessionState.SOFT_LOST
        assert session.driver is None

    @pytest.mark.asyncio
    async def test_hard_close_skips_remote_call(self, session, mock_driver_factory):
        await session.get_driver()

        session.hard_close()

        mock_driver_factory.destroy.assert_not_called()
        assert session.state is SessionState.HARD_LOST
        assert session.driver is None

    @pytest.mark.asyncio
    async def test_lost_session_is_recreated_on_next_use(self, session, mock_driver_factory):
        await session.get_driver()
        session.hard_close()

        await session.get_driver()

        assert mock_driver_factory.create.call_count == 2
        assert session.state is SessionState.ACTIVE

    @pytest.mark.asyncio
    async def test_reset_listeners_run_on_recreation(self, session):
        listener = MagicMock()
        session.on_reset(listener)
        session.page_update_script = "return true;"

        await session.get_driver()

        listener.assert_called_once()
        assert session.page_update_script is None

    @pytest.mark.asyncio
    async def test_is_alive(self, session):
        assert await session.is_alive() is False

        await session.get_driver()

        assert await session.is_alive() is True

    @pytest.mark.asyncio
    async def test_is_alive_is_bounded(self, mock_driver_factory, mock_webdriver):
        """A wedged endpoint makes the liveness check fail instead of hang."""
        type(mock_webdriver).current_url = PropertyMock(side_effect=lambda: time.sleep(1))
        session = SessionHandle(mock_driver_factory, command_timeout=0.1)
        await session.get_driver()

        start = time.monotonic()
        assert await session.is_alive() is False
        assert time.monotonic() - start < 0.9

    @pytest.mark.asyncio
    async def test_close_is_bounded_when_endpoint_hangs(self, mock_driver_factory):
        async def never_returns(driver):
            await anyio.sleep_forever()

        mock_driver_factory.destroy.side_effect = never_returns
        session = SessionHandle(mock_driver_factory, command_timeout=0.1)
        await session.get_driver()

        with anyio.fail_after(2):
            await session.close(lost=True)

        assert session.state is SessionState.HARD_LOST
        assert session.driver is None

    def test_to_dict(self, session):
        result = session.to_dict()

        assert result["state"] == "absent"
        assert result["session_id"] is None
        assert result["wait_timeout"] == 0.2


class TestWaitingTimeout:
    """Tests for scoped wait-timeout overrides."""

    def test_default_wait_timeout(self, mock_driver_factory):
        handle = SessionHandle(mock_driver_factory, default_wait_timeout=7.5)
        assert handle.wait_timeout == 7.5

    def test_without_waiting(self, session):
        with session.without_waiting():
            assert session.wait_timeout == 0

        assert session.wait_timeout == 0.2

    def test_without_waiting_restores_on_error(self, session):
        """The previous timeout comes back even when the probe fails."""
        with pytest.raises(RuntimeError):
            with session.without_waiting():
                raise RuntimeError("probe failed")

        assert session.wait_timeout == 0.2

    def test_nested_overrides(self, session):
        with session.waiting_timeout(5):
            with session.without_waiting():
                assert session.wait_timeout == 0
            assert session.wait_timeout == 5

        assert session.wait_timeout == 0.2

    def test_negative_timeout_rejected(self, session):
        with pytest.raises(ValueError):
            session.set_waiting_timeout(-1)
