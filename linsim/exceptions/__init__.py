"""
linsim Exception Hierarchy

Architecture:
    CoreException
    ├── BootFailureError
    └── ConfigValidationError
    FileSystemException
    ├── NotFoundError       (404)
    ├── BadRequestError     (400)
    ├── ConflictError       (409)
    ├── ForbiddenError      (403)
    └── StoreError          (500)
"""

from .core_exceptions import (
    CoreException,
    BootFailureError,
    ConfigValidationError,
)

from .fs_exceptions import (
    FileSystemException,
    NotFoundError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    StoreError,
)

__all__ = [
    # Core exceptions
    "CoreException",
    "BootFailureError",
    "ConfigValidationError",
    # Filesystem exceptions
    "FileSystemException",
    "NotFoundError",
    "BadRequestError",
    "ConflictError",
    "ForbiddenError",
    "StoreError",
]
