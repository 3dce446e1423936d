"""
Permissions Module

Permission bits and the permission evaluator.

Permissions travel as a 9-character string ("rwxr-xr-x") at the store
and API boundaries and are held as a ``Permission`` flag set
everywhere else. Only two triples are ever evaluated: the owner triple
for the node's owner and the other triple for everyone else. Groups
are not modelled, so the group triple is stored but never consulted.

Version: 1.0.0
"""

from __future__ import annotations

from enum import Flag
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .node import Node


PERMISSION_LETTERS = "rwxrwxrwx"
PERMISSION_ALPHABET = frozenset("rwx-")


class Permission(Flag):
    """File permission bits."""
    # Owner permissions
    OWNER_READ = 0o400
    OWNER_WRITE = 0o200
    OWNER_EXEC = 0o100

    # Group permissions
    GROUP_READ = 0o040
    GROUP_WRITE = 0o020
    GROUP_EXEC = 0o010

    # Other permissions
    OTHER_READ = 0o004
    OTHER_WRITE = 0o002
    OTHER_EXEC = 0o001

    # Default permissions
    DEFAULT_FILE = 0o644   # rw-r--r--
    DEFAULT_DIR = 0o755    # rwxr-xr-x


def validate_permissions(text: Optional[str]) -> bool:
    """Return True if ``text`` is 9 characters over r, w, x and '-'."""
    return (
        isinstance(text, str)
        and len(text) == len(PERMISSION_LETTERS)
        and set(text) <= PERMISSION_ALPHABET
    )


def parse_permissions(text: str) -> Permission:
    """
    Parse a permission string into flags.

    A position grants its bit whenever its character is not '-'.

    Raises:
        ValueError: If the string is malformed
    """
    if not validate_permissions(text):
        raise ValueError(f"Invalid permission string: {text!r}")

    mode = Permission(0)
    for position, char in enumerate(text):
        if char != '-':
            mode |= Permission(0o400 >> position)
    return mode


def format_permissions(mode: Permission) -> str:
    """Render flags as a 9-character permission string."""
    return ''.join(
        letter if Permission(0o400 >> position) in mode else '-'
        for position, letter in enumerate(PERMISSION_LETTERS)
    )


def is_owner(node: Node, user_id: Optional[int]) -> bool:
    """A caller owns a node only if the node has an owner and it is them."""
    return node.owner_id is not None and node.owner_id == user_id


def _granted(node: Node, user_id: Optional[int], owner_bit: Permission, other_bit: Permission) -> bool:
    bit = owner_bit if is_owner(node, user_id) else other_bit
    return bit in node.mode


def can_read(node: Node, user_id: Optional[int]) -> bool:
    """Check read permission."""
    return _granted(node, user_id, Permission.OWNER_READ, Permission.OTHER_READ)


def can_write(node: Node, user_id: Optional[int]) -> bool:
    """Check write permission."""
    return _granted(node, user_id, Permission.OWNER_WRITE, Permission.OTHER_WRITE)


def can_execute(node: Node, user_id: Optional[int]) -> bool:
    """Check execute (traverse) permission."""
    return _granted(node, user_id, Permission.OWNER_EXEC, Permission.OTHER_EXEC)
