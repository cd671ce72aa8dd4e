"""
Lambda Chain - Exception Hierarchy
==================================

What:  Package-specific exceptions for the runtime adapter and configuration.
How:   Each exception carries a message and an optional context dict. The
       context is logged, never sent back to the Runtime API.
Who:   Raised by the config layer and the runtime adapter.

Handler exceptions are deliberately absent from this hierarchy: whatever the
innermost handler raises travels through every middleware untouched and is
reported to the Runtime API as an invocation error.

Exception Hierarchy:
    LambdaChainError (base)
    ├── ConfigurationError   missing or invalid environment
    ├── RuntimeAPIError      the Runtime API rejected a call or is unreachable
    └── EventDecodeError     the invocation payload does not fit the event type
"""

from typing import Any, Dict, Optional


class LambdaChainError(Exception):
    """
    Base exception for all lambda_chain errors.

    Attributes:
        message:  Human-readable description.
        context:  Additional debug info for logging.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(LambdaChainError):
    """Raised when the process environment cannot support the requested operation."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        setting: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if setting:
            ctx["setting"] = setting
        super().__init__(message=message, context=ctx)
        self.setting = setting


class RuntimeAPIError(LambdaChainError):
    """
    Raised when a call to the Lambda Runtime API fails.

    When:  Non-2xx status from the Runtime API, or transport errors that
           survived the retry policy.
    Effect: Ends the serve loop. Lambda restarts the execution environment.
    """

    def __init__(
        self,
        message: str = "Runtime API call failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class EventDecodeError(LambdaChainError):
    """
    Raised when an invocation payload cannot be decoded into the event type.

    The serve loop reports it as an invocation error of type
    ``EventDecodeError`` and keeps polling.
    """

    def __init__(
        self,
        message: str = "Invocation payload could not be decoded",
        event_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if event_type:
            ctx["event_type"] = event_type
        super().__init__(message=message, context=ctx)
        self.event_type = event_type
