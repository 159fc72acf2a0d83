"""Session-resilience and element-resolution engine."""

from .classifier import FailureClass, classify
from .context import BrowserContext, current_context, get_current_context, use_context
from .driver_factory import DriverFactory, StaticCapabilitiesProvider
from .element_cache import ElementCache
from .exceptions import (
    SeleniumGuardError,
    NoSuchElementError,
    WaitTimeoutError,
    SessionLostError,
    DriverCallTimeoutError,
    UnknownLocatorKindError,
    SessionNotFoundError,
    SessionLimitError,
    GridConnectionError,
)
from .locators import Locator, LocatorChain, LocatorConverter
from .resolver import ElementResolver
from .session import SessionHandle, SessionState
from .session_manager import SessionManager, SessionSweeper
from .supervisor import CallTrace, RecoverySupervisor
from .waits import WaitEngine, WaitSpec

__all__ = [
    "FailureClass",
    "classify",
    "BrowserContext",
    "current_context",
    "get_current_context",
    "use_context",
    "DriverFactory",
    "StaticCapabilitiesProvider",
    "ElementCache",
    "SeleniumGuardError",
    "NoSuchElementError",
    "WaitTimeoutError",
    "SessionLostError",
    "DriverCallTimeoutError",
    "UnknownLocatorKindError",
    "SessionNotFoundError",
    "SessionLimitError",
    "GridConnectionError",
    "Locator",
    "LocatorChain",
    "LocatorConverter",
    "ElementResolver",
    "SessionHandle",
    "SessionState",
    "SessionManager",
    "SessionSweeper",
    "CallTrace",
    "RecoverySupervisor",
    "WaitEngine",
    "WaitSpec",
]
