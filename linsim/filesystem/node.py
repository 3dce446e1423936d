"""
Node Module

The single entity of the virtual filesystem: a file or a directory in
one shared tree. Nodes reference their parent by id, never by object,
so the tree is an arena keyed by id and every structural check is an
id comparison against the store.

Version: 1.0.0
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Any

from .permissions import Permission, format_permissions


ROOT_NAME = "/"
PATH_SEPARATOR = "/"


class NodeType(Enum):
    """Types of nodes."""
    FILE = "file"
    DIRECTORY = "directory"


def is_valid_name(name: Optional[str]) -> bool:
    """A node name is a non-empty string without the path separator."""
    return isinstance(name, str) and bool(name) and PATH_SEPARATOR not in name


@dataclass(frozen=True)
class Node:
    """
    A filesystem node, detached from the store.

    ``owner_id`` is None for system-provisioned nodes, ``parent_id`` is
    None only for the root, and ``content`` is None only for directories.
    """

    id: int
    owner_id: Optional[int]
    parent_id: Optional[int]
    name: str
    node_type: NodeType
    mode: Permission
    content: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def permissions(self) -> str:
        return format_permissions(self.mode)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_directory(self) -> bool:
        return self.node_type == NodeType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.node_type == NodeType.FILE

    def to_dict(self) -> dict[str, Any]:
        """Convert node to the client-facing dictionary shape."""
        return {
            'id': self.id,
            'ownerId': self.owner_id,
            'parentId': self.parent_id,
            'name': self.name,
            'type': self.node_type.value,
            'content': self.content,
            'permissions': self.permissions,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
