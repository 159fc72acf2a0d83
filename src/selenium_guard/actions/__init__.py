"""Browser actions built on the guarded session engine."""

from .alerts import AlertHandler
from .elements import (
    attribute,
    clear,
    click,
    exists,
    is_displayed,
    press_key,
    scroll_into_view,
    select_option,
    send_keys,
    set_checked,
    text,
)
from .page import (
    back,
    current_url,
    execute_script,
    navigate,
    refresh,
    switch_to_default_content,
    title,
)
from .waits import (
    is_clickable,
    is_not_visible,
    is_visible,
    wait_for_condition,
    wait_until_alert_present,
    wait_until_attribute_contains,
    wait_until_attribute_equals,
    wait_until_attribute_not_empty,
    wait_until_clickable,
    wait_until_exists,
    wait_until_not_selected,
    wait_until_not_visible,
    wait_until_selected,
    wait_until_url_equals,
    wait_until_visible,
)

__all__ = [
    "AlertHandler",
    "attribute",
    "back",
    "clear",
    "click",
    "current_url",
    "execute_script",
    "exists",
    "is_clickable",
    "is_displayed",
    "is_not_visible",
    "is_visible",
    "navigate",
    "press_key",
    "refresh",
    "scroll_into_view",
    "select_option",
    "send_keys",
    "set_checked",
    "switch_to_default_content",
    "text",
    "title",
    "wait_for_condition",
    "wait_until_alert_present",
    "wait_until_attribute_contains",
    "wait_until_attribute_equals",
    "wait_until_attribute_not_empty",
    "wait_until_clickable",
    "wait_until_exists",
    "wait_until_not_selected",
    "wait_until_not_visible",
    "wait_until_selected",
    "wait_until_url_equals",
    "wait_until_visible",
]
