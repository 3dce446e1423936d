"""
Filesystem Exceptions

Exceptions raised by the filesystem engine and the node store.
Every engine operation either returns normally or raises exactly one
of these, and each one carries the HTTP status a transport layer
should answer with.

Version: 1.0.0
"""

from typing import Optional, Any


class FileSystemException(Exception):
    """
    Base exception for all filesystem-related errors.

    Attributes:
        message: Human-readable error description
        node_id: Node associated with the error (if applicable)
        error_code: Numeric error code for programmatic handling
        http_status: Status code a transport layer maps this error to
        context: Additional structured context
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        node_id: Optional[int] = None,
        error_code: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.node_id = node_id
        self.error_code = error_code or 4000
        self.context = context or {}
        if node_id is not None:
            self.context["node_id"] = node_id

    def __str__(self) -> str:
        base = f"[Error {self.error_code}] {self.message}"
        if self.node_id is not None:
            base = f"{base} (node_id={self.node_id})"
        return base


class NotFoundError(FileSystemException):
    """
    The node does not exist, or the caller may not know that it does.

    Read paths deliberately report permission failures as this error
    so that inaccessible nodes cannot be probed for.

    Example:
        >>> raise NotFoundError("Node not found", node_id=42)
    """

    http_status = 404

    def __init__(
        self,
        message: str = "Node not found",
        node_id: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            node_id=node_id,
            error_code=4001,
            context=context
        )


class BadRequestError(FileSystemException):
    """
    The request violates a structural or validation rule.

    Raised for invalid names and permission strings, non-directory
    parents, operations on the root, moves that would create a cycle,
    and deletion of a non-empty directory.

    Example:
        >>> raise BadRequestError("Invalid name", reason="contains '/'")
    """

    http_status = 400

    def __init__(
        self,
        message: str,
        node_id: Optional[int] = None,
        reason: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if reason:
            ctx["reason"] = reason
        super().__init__(
            message=message,
            node_id=node_id,
            error_code=4002,
            context=ctx
        )
        self.reason = reason


class ConflictError(FileSystemException):
    """
    A sibling with the same name already exists.

    Example:
        >>> raise ConflictError("File already exists", parent_id=7, name="a.txt")
    """

    http_status = 409

    def __init__(
        self,
        message: str,
        parent_id: Optional[int] = None,
        name: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if parent_id is not None:
            ctx["parent_id"] = parent_id
        if name is not None:
            ctx["name"] = name
        super().__init__(
            message=message,
            error_code=4003,
            context=ctx
        )
        self.parent_id = parent_id
        self.name = name


class ForbiddenError(FileSystemException):
    """
    Permission denied for the operation.

    Only raised on write paths, where the caller already knows the
    node exists.

    Example:
        >>> raise ForbiddenError("Permission denied", node_id=3, operation="write", user_id=2)
    """

    http_status = 403

    def __init__(
        self,
        message: str = "Permission denied",
        node_id: Optional[int] = None,
        operation: Optional[str] = None,
        user_id: Optional[int] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        if user_id is not None:
            ctx["user_id"] = user_id
        super().__init__(
            message=message,
            node_id=node_id,
            error_code=4004,
            context=ctx
        )
        self.operation = operation
        self.user_id = user_id


class StoreError(FileSystemException):
    """
    The backing store failed (connectivity, unexpected constraint).

    The enclosing transaction has been rolled back when this surfaces.
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None
    ) -> None:
        ctx = context or {}
        if cause is not None:
            ctx["cause"] = type(cause).__name__
        super().__init__(
            message=message,
            error_code=4005,
            context=ctx
        )
        self.cause = cause
