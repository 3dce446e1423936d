"""
linsim Virtual File System Module

Provides the shared filesystem tree:
- Nodes and rwx permission evaluation
- SQLAlchemy-backed node store
- Permission-checked path resolution
- Tree views
- The filesystem engine
"""

from .node import Node, NodeType, ROOT_NAME
from .permissions import (
    Permission,
    can_read,
    can_write,
    can_execute,
    is_owner,
    parse_permissions,
    format_permissions,
    validate_permissions,
)
from .store import NodeStore
from .path_resolver import PathResolver, ParsedPath
from .tree import TreeView, materialize, sort_nodes
from .provisioning import seed_system_nodes, provision_home
from .engine import FilesystemEngine

__all__ = [
    # Node
    'Node',
    'NodeType',
    'ROOT_NAME',
    # Permissions
    'Permission',
    'can_read',
    'can_write',
    'can_execute',
    'is_owner',
    'parse_permissions',
    'format_permissions',
    'validate_permissions',
    # Store
    'NodeStore',
    # Path Resolver
    'PathResolver',
    'ParsedPath',
    # Tree
    'TreeView',
    'materialize',
    'sort_nodes',
    # Provisioning
    'seed_system_nodes',
    'provision_home',
    # Engine
    'FilesystemEngine',
]
