"""Domain-specific exceptions for guarded browser sessions."""

from typing import Optional


class SeleniumGuardError(Exception):
    """Base exception for all selenium_guard errors."""

    pass


class NoSuchElementError(SeleniumGuardError):
    """Raised when a locator chain cannot be resolved to a live element."""

    def __init__(
        self,
        chain: str,
        timeout_seconds: Optional[float] = None,
        reason: str = "",
    ):
        self.chain = chain
        self.timeout_seconds = timeout_seconds
        self.reason = reason
        message = f"Cannot find element {chain}"
        if timeout_seconds is not None:
            message += f" within {timeout_seconds}s"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class WaitTimeoutError(SeleniumGuardError):
    """Raised when a wait condition is not met before its deadline."""

    def __init__(self, condition: Optional[str], timeout_seconds: float):
        self.condition = condition
        self.timeout_seconds = timeout_seconds
        if condition:
            super().__init__(f"Timeout ({timeout_seconds}s) waiting for: {condition}")
        else:
            super().__init__(f"Timeout ({timeout_seconds}s) waiting for condition")


class SessionLostError(SeleniumGuardError):
    """
    Raised when the remote session has been lost and must be recreated.

    By the time this is raised the session has already been closed (soft)
    or discarded (hard) and the element cache cleared.
    """

    def __init__(
        self,
        message: str = "Driver session has been lost",
        cause: Optional[BaseException] = None,
        hard: bool = False,
    ):
        self.cause = cause
        self.hard = hard
        # Set once the session has been closed or discarded for this error
        self.handled = False
        super().__init__(message)


class DriverCallTimeoutError(SessionLostError):
    """Raised when a single transport call exceeds the driver operation timeout."""

    def __init__(
        self,
        operation: str,
        timeout_seconds: float,
        cause: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Driver operation timeout [{timeout_seconds}s] during {operation}",
            cause=cause,
        )


class UnknownLocatorKindError(SeleniumGuardError):
    """Raised when a locator kind has no registered converter."""

    def __init__(self, kind: str, known_kinds: list[str]):
        self.kind = kind
        self.known_kinds = known_kinds
        super().__init__(f"Unknown type of locator '{kind}'. Supported: {known_kinds}")


class SessionNotFoundError(SeleniumGuardError):
    """Raised when referencing a non-existent or expired named session."""

    def __init__(self, session_name: str):
        self.session_name = session_name
        super().__init__(f"Session not found: {session_name}")


class SessionLimitError(SeleniumGuardError):
    """Raised when max session limit is reached."""

    def __init__(self, max_sessions: int):
        self.max_sessions = max_sessions
        super().__init__(f"Maximum sessions ({max_sessions}) reached")


class GridConnectionError(SeleniumGuardError):
    """Raised when unable to create a session on the remote endpoint."""

    def __init__(self, grid_url: str, message: str):
        self.grid_url = grid_url
        super().__init__(f"Failed to connect to Selenium Grid at {grid_url}: {message}")
