"""
Core Exceptions

Exceptions raised while loading configuration and bringing the
filesystem up. These are failures of the service itself rather than
of a single filesystem request.

Version: 1.0.0
"""

from typing import Optional, Any


class CoreException(Exception):
    """
    Base exception for configuration and boot errors.

    Attributes:
        message: Human-readable error description
        error_code: Numeric error code for programmatic handling
        context: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or 0
        self.context = context or {}

    def __str__(self) -> str:
        base = f"[Error {self.error_code}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({context_str})"
        return base

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code})"
        )


class BootFailureError(CoreException):
    """
    Error during the boot sequence.

    Common causes:
    - Configuration file missing or unreadable
    - Database unreachable
    - Seeding the system directories failed

    Example:
        >>> raise BootFailureError("Cannot reach database", subsystem="store")
    """

    def __init__(
        self,
        message: str,
        subsystem: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if subsystem:
            ctx["subsystem"] = subsystem
        super().__init__(
            message=message,
            error_code=1001,
            context=ctx
        )
        self.subsystem = subsystem


class ConfigValidationError(CoreException):
    """Raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if key:
            ctx["key"] = key
        super().__init__(
            message=message,
            error_code=1002,
            context=ctx
        )
        self.key = key
