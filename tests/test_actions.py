"""Unit tests for element, page, wait and alert actions."""

import pytest
from unittest.mock import MagicMock, PropertyMock
from selenium.common.exceptions import (
    NoAlertPresentException,
    StaleElementReferenceException,
    TimeoutException,
)
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.common.by import By

from selenium_guard.actions import elements, page, waits
from selenium_guard.actions.alerts import AlertHandler
from selenium_guard.core.exceptions import NoSuchElementError, SessionLostError, WaitTimeoutError
from selenium_guard.core.locators import by_css, by_id
from selenium_guard.core.session import SessionState


class TestElementActions:
    """Tests for element interactions."""

    @pytest.mark.asyncio
    async def test_click_scrolls_into_view(self, browser_context, mock_webdriver, mock_webelement):
        await elements.click(by_id("submit"), context=browser_context)

        mock_webdriver.execute_script.assert_called_once_with(
            "arguments[0].scrollIntoView({block: 'center'});", mock_webelement
        )
        mock_webelement.click.assert_called_once()

    @pytest.mark.asyncio
    async def test_click_retries_after_stale_element(
        self, browser_context, mock_webdriver, mock_webelement, make_element
    ):
        fresh = make_element()
        mock_webelement.click.side_effect = StaleElementReferenceException("stale")
        mock_webdriver.find_elements.side_effect = [[mock_webelement], [fresh]]

        await elements.click(by_id("submit"), context=browser_context)

        fresh.click.assert_called_once()
        assert mock_webdriver.find_elements.call_count == 2

    @pytest.mark.asyncio
    async def test_send_keys_with_clear(self, browser_context, mock_webelement):
        await elements.send_keys(by_css("input.q"), "hello", clear_first=True, context=browser_context)

        mock_webelement.clear.assert_called_once()
        mock_webelement.send_keys.assert_called_once_with("hello")

    @pytest.mark.asyncio
    async def test_send_keys_without_clear(self, browser_context, mock_webelement):
        await elements.send_keys(by_css("input.q"), "hello", context=browser_context)

        mock_webelement.clear.assert_not_called()

    @pytest.mark.asyncio
    async def test_press_key(self, browser_context, mock_webelement):
        await elements.press_key(by_css("input.q"), "enter", context=browser_context)

        mock_webelement.send_keys.assert_called_once_with(Keys.ENTER)

    @pytest.mark.asyncio
    async def test_press_unknown_key(self, browser_context):
        with pytest.raises(ValueError):
            await elements.press_key(by_css("input.q"), "HYPER", context=browser_context)

    @pytest.mark.asyncio
    async def test_text_and_attribute(self, browser_context, mock_webelement):
        mock_webelement.get_attribute.return_value = "primary"

        assert await elements.text(by_id("title"), context=browser_context) == "Click Me"
        assert await elements.attribute(by_id("title"), "class", context=browser_context) == "primary"
        mock_webelement.get_attribute.assert_called_once_with("class")

    @pytest.mark.asyncio
    async def test_missing_element_raises_with_chain(self, browser_context, mock_webdriver):
        mock_webdriver.find_elements.return_value = []

        with pytest.raises(NoSuchElementError) as exc:
            await elements.click([by_id("form"), by_css(".missing")], context=browser_context)

        assert "form -> .missing" in str(exc.value)

    @pytest.mark.asyncio
    async def test_set_checked_only_clicks_on_change(self, browser_context, mock_webelement):
        mock_webelement.is_selected.return_value = True

        assert await elements.set_checked(by_id("agree"), True, context=browser_context) is False
        assert await elements.set_checked(by_id("agree"), False, context=browser_context) is True
        mock_webelement.click.assert_called_once()


class TestProbes:
    """Zero-wait probes never raise for missing elements."""

    @pytest.mark.asyncio
    async def test_is_displayed_missing_element(self, browser_context, mock_webdriver):
        mock_webdriver.find_elements.return_value = []

        assert await elements.is_displayed(by_id("gone"), context=browser_context) is False
        assert mock_webdriver.find_elements.call_count == 1

    @pytest.mark.asyncio
    async def test_is_displayed_restores_wait_timeout(self, browser_context, mock_webdriver):
        mock_webdriver.find_elements.return_value = []

        await elements.is_displayed(by_id("gone"), context=browser_context)

        assert browser_context.session.wait_timeout == 0.2

    @pytest.mark.asyncio
    async def test_is_displayed_visible(self, browser_context):
        assert await elements.is_displayed(by_id("here"), context=browser_context) is True

    @pytest.mark.asyncio
    async def test_exists(self, browser_context, mock_webdriver):
        assert await elements.exists(by_id("here"), context=browser_context) is True

        mock_webdriver.find_elements.return_value = []
        assert await elements.exists(by_id("gone"), context=browser_context) is False


class TestPageActions:
    """Tests for navigation and scripting."""

    @pytest.mark.asyncio
    async def test_navigate(self, browser_context, mock_webdriver):
        browser_context.waits.set_page_update_script("return true;")

        url = await page.navigate("https://example.com", context=browser_context)

        mock_webdriver.get.assert_called_once_with("https://example.com")
        assert url == "https://example.com"

    @pytest.mark.asyncio
    async def test_navigate_failure_discards_session(self, browser_context, mock_webdriver, mock_driver_factory):
        mock_webdriver.get.side_effect = TimeoutException("page load timeout")

        with pytest.raises(SessionLostError) as exc:
            await page.navigate("https://example.com", context=browser_context)

        assert exc.value.hard is True
        assert browser_context.state is SessionState.HARD_LOST
        mock_driver_factory.destroy.assert_not_called()

    @pytest.mark.asyncio
    async def test_navigate_clears_cache(self, browser_context):
        browser_context.waits.set_page_update_script("return true;")
        await elements.text(by_id("title"), context=browser_context)

        await page.navigate("https://example.com/next", context=browser_context)

        assert len(browser_context.cache) == 0

    @pytest.mark.asyncio
    async def test_title_and_current_url(self, browser_context):
        assert await page.title(context=browser_context) == "Example Page"
        assert await page.current_url(context=browser_context) == "https://example.com"

    @pytest.mark.asyncio
    async def test_execute_script(self, browser_context, mock_webdriver, mock_webelement):
        mock_webdriver.execute_script.return_value = 42

        result = await page.execute_script("return arguments[0];", mock_webelement, context=browser_context)

        assert result == 42
        mock_webdriver.execute_script.assert_called_once_with("return arguments[0];", mock_webelement)


class TestWaitActions:
    """Tests for element wait conditions."""

    @pytest.mark.asyncio
    async def test_wait_until_visible(self, browser_context, mock_webelement):
        mock_webelement.is_displayed.side_effect = [False, False, True]

        element = await waits.wait_until_visible(by_id("panel"), timeout=1, context=browser_context)

        assert element is mock_webelement

    @pytest.mark.asyncio
    async def test_wait_until_visible_timeout(self, browser_context, mock_webdriver):
        mock_webdriver.find_elements.return_value = []

        with pytest.raises(WaitTimeoutError) as exc:
            await waits.wait_until_visible(by_id("panel"), timeout=0.05, context=browser_context)

        assert "visibility of element panel" in str(exc.value)

    @pytest.mark.asyncio
    async def test_wait_until_not_visible_when_absent(self, browser_context, mock_webdriver):
        mock_webdriver.find_elements.return_value = []

        assert await waits.wait_until_not_visible(by_id("spinner"), timeout=0.5, context=browser_context) is True

    @pytest.mark.asyncio
    async def test_wait_until_clickable(self, browser_context, mock_webelement):
        mock_webelement.is_enabled.side_effect = [False, True]

        assert await waits.wait_until_clickable(by_id("save"), timeout=1, context=browser_context) is mock_webelement

    @pytest.mark.asyncio
    async def test_wait_until_attribute_contains(self, browser_context, mock_webelement):
        mock_webelement.get_attribute.side_effect = [None, "btn", "btn active"]

        await waits.wait_until_attribute_contains(by_id("tab"), "class", "active", timeout=1, context=browser_context)

        assert mock_webelement.get_attribute.call_count == 3

    @pytest.mark.asyncio
    async def test_wait_until_url_equals(self, browser_context):
        url = await waits.wait_until_url_equals("https://example.com", timeout=0.5, context=browser_context)

        assert url == "https://example.com"

    @pytest.mark.asyncio
    async def test_quiet_variants(self, browser_context, mock_webdriver, mock_webelement):
        assert await waits.is_visible(by_id("panel"), timeout=0.05, context=browser_context) is True

        mock_webelement.is_displayed.return_value = False
        browser_context.clear_cache()
        assert await waits.is_visible(by_id("panel"), timeout=0.05, context=browser_context) is False
        assert await waits.is_not_visible(by_id("panel"), timeout=0.05, context=browser_context) is True

    @pytest.mark.asyncio
    async def test_wait_finds_element_in_default_css(self, browser_context, mock_webdriver):
        await waits.wait_until_exists(by_css(".row"), timeout=0.5, context=browser_context)

        mock_webdriver.find_elements.assert_called_with(By.CSS_SELECTOR, ".row")


class TestAlertHandler:
    """Tests for AlertHandler."""

    @pytest.mark.asyncio
    async def test_is_displayed_without_alert(self, browser_context, mock_webdriver):
        type(mock_webdriver.switch_to).alert = PropertyMock(side_effect=NoAlertPresentException("no alert"))

        assert await AlertHandler(browser_context).is_displayed() is False

    @pytest.mark.asyncio
    async def test_accept(self, browser_context, mock_webdriver):
        alert = MagicMock()
        alert.text = "Are you sure?"
        mock_webdriver.switch_to.alert = alert
        handler = AlertHandler(browser_context)

        assert await handler.is_displayed() is True
        assert await handler.text() == "Are you sure?"
        await handler.accept()

        alert.accept.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_keys_and_dismiss(self, browser_context, mock_webdriver):
        alert = MagicMock()
        mock_webdriver.switch_to.alert = alert
        handler = AlertHandler(browser_context)

        await handler.send_keys("answer")
        await handler.dismiss()

        alert.send_keys.assert_called_once_with("answer")
        alert.dismiss.assert_called_once()
