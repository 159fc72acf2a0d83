"""Classify transport failures into recovery actions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from selenium.common.exceptions import (
    InvalidElementStateException,
    InvalidSessionIdException,
    NoAlertPresentException,
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
    UnexpectedAlertPresentException,
    UnknownMethodException,
)
from urllib3.exceptions import (
    MaxRetryError,
    NewConnectionError,
    ProtocolError,
    ReadTimeoutError,
)

from .exceptions import (
    DriverCallTimeoutError,
    NoSuchElementError,
    SessionLostError,
    WaitTimeoutError,
)


class FailureClass(str, Enum):
    """What the supervisor should do about a failed call."""

    IGNORABLE = "ignorable"
    RETRY_SAME_SESSION = "retry_same_session"
    SESSION_LOST_SOFT = "session_lost_soft"
    SESSION_LOST_HARD = "session_lost_hard"
    FATAL = "fatal"


# Operations whose failure means the session cannot be trusted any more
HARD_LOSS_OPERATIONS = frozenset({"get", "close", "quit"})

CURRENT_URL_OPERATIONS = frozenset({"current_url", "get_current_url", "getcurrenturl"})

# Message fragments of transport-level disconnects
DISCONNECT_SIGNATURES = (
    "Session not started or terminated",
    "not reachable",
    "not connected to DevTools",
    "Unable to communicate to node",
    "Remote browser did not respond",
    "cannot get automation extension",
    "was terminated due to",
    "Connection refused",
    "not available and is not among the last 1000 terminated sessions",
    "session deleted because of page crash",
    "Java heap space",
    "OutOfMemoryError",
    "unable to connect to renderer",
    "Address already in use",
)

# Chrome reports this for slow renders; the command itself usually succeeded
RENDERER_TIMEOUT_SIGNATURE = "Timed out receiving message from renderer"

NO_SUCH_SESSION_SIGNATURES = (
    "no such session",
    "invalid session id",
)

DISCONNECT_TYPES = (
    SessionLostError,
    UnknownMethodException,
    ConnectionError,
    MaxRetryError,
    NewConnectionError,
    ProtocolError,
)

STALE_TYPES = (
    StaleElementReferenceException,
    InvalidElementStateException,
)

BENIGN_TYPES = (
    NoSuchElementException,
    NoSuchElementError,
    NoAlertPresentException,
    UnexpectedAlertPresentException,
    TimeoutException,
    WaitTimeoutError,
)


def error_message(error: BaseException) -> str:
    """Return the error message, or an empty string if it cannot be rendered."""
    try:
        msg = getattr(error, "msg", None)
        return f"{msg or ''} {error}"
    except Exception:
        return ""


def _normalize_operation(operation: Optional[str]) -> str:
    return (operation or "").strip().lower()


def is_call_timeout(error: BaseException, operation: str) -> bool:
    return isinstance(error, (DriverCallTimeoutError, ReadTimeoutError))


def is_no_such_session(error: BaseException, operation: str) -> bool:
    if isinstance(error, InvalidSessionIdException):
        return True
    message = error_message(error).lower()
    return any(sig in message for sig in NO_SUCH_SESSION_SIGNATURES)


def is_hard_session_loss(error: BaseException, operation: str) -> bool:
    if isinstance(error, UnexpectedAlertPresentException):
        return False
    if isinstance(error, SessionLostError) and error.hard:
        return True
    return is_no_such_session(error, operation) or operation in HARD_LOSS_OPERATIONS


def is_disconnect(error: BaseException, operation: str) -> bool:
    if isinstance(error, DISCONNECT_TYPES):
        return True
    if isinstance(error, TimeoutException) and operation in CURRENT_URL_OPERATIONS:
        return True
    message = error_message(error)
    return any(sig in message for sig in DISCONNECT_SIGNATURES)


def is_renderer_timeout(error: BaseException) -> bool:
    return isinstance(error, TimeoutException) and RENDERER_TIMEOUT_SIGNATURE in error_message(error)


def is_stale(error: BaseException, operation: str) -> bool:
    return isinstance(error, STALE_TYPES)


def is_benign(error: BaseException, operation: str) -> bool:
    return isinstance(error, BENIGN_TYPES)


@dataclass(frozen=True)
class ClassificationRule:
    """A named predicate mapped to the failure class it yields."""

    name: str
    predicate: Callable[[BaseException, str], bool]
    failure_class: FailureClass


def _call_timeout_class(error: BaseException, operation: str) -> FailureClass:
    if operation in HARD_LOSS_OPERATIONS:
        return FailureClass.SESSION_LOST_HARD
    return FailureClass.SESSION_LOST_SOFT


# Checked in order, first match wins
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("hard_session_loss", is_hard_session_loss, FailureClass.SESSION_LOST_HARD),
    ClassificationRule("disconnect", is_disconnect, FailureClass.SESSION_LOST_SOFT),
    ClassificationRule("stale_element", is_stale, FailureClass.RETRY_SAME_SESSION),
    ClassificationRule("benign", is_benign, FailureClass.IGNORABLE),
)


def classify(
    error: BaseException,
    operation: Optional[str] = None,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> FailureClass:
    """
    Classify a failure raised during ``operation``.

    Pure and total: never raises, and identical inputs always produce the
    same class. A call-timeout is always a session loss, hard when it hit
    one of the navigation/teardown operations.

    Args:
        error: The exception raised by the call
        operation: Name of the transport operation (e.g. "get", "click")
        rules: Ordered classification table

    Returns:
        The FailureClass for this failure
    """
    op = _normalize_operation(operation)
    try:
        if is_call_timeout(error, op):
            return _call_timeout_class(error, op)
        for rule in rules:
            if rule.predicate(error, op):
                return rule.failure_class
    except Exception:
        return FailureClass.FATAL
    return FailureClass.FATAL


def matching_rule(
    error: BaseException,
    operation: Optional[str] = None,
    rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
) -> Optional[str]:
    """Name of the first rule matching ``error``, for diagnostics."""
    op = _normalize_operation(operation)
    if is_call_timeout(error, op):
        return "call_timeout"
    for rule in rules:
        try:
            if rule.predicate(error, op):
                return rule.name
        except Exception:
            return None
    return None
