"""
Tree Materializer

Renders a node and its readable descendants as a nested structure for
clients. Ordering (directories first, then by name) is applied here;
the store returns children in no particular order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, TYPE_CHECKING

from .node import Node, NodeType
from .permissions import can_read

if TYPE_CHECKING:
    from .store import NodeStore


@dataclass
class TreeView:
    """A materialized subtree."""
    id: int
    name: str
    node_type: NodeType
    permissions: str
    content: Optional[str] = None
    children: Optional[List['TreeView']] = field(default=None)

    def find(self, name: str) -> Optional['TreeView']:
        """Direct child by name."""
        for child in self.children or []:
            if child.name == name:
                return child
        return None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            'id': self.id,
            'name': self.name,
            'type': self.node_type.value,
            'permissions': self.permissions,
        }
        if self.node_type == NodeType.FILE:
            result['content'] = self.content or ""
        else:
            result['children'] = [child.to_dict() for child in self.children or []]
        return result


def sort_nodes(nodes: Iterable[Node]) -> List[Node]:
    """Directories before files, then lexicographically by name."""
    return sorted(nodes, key=lambda n: (n.node_type != NodeType.DIRECTORY, n.name))


def materialize(store: NodeStore, node: Node, user_id: Optional[int]) -> TreeView:
    """
    Build the tree view of ``node`` as seen by ``user_id``.

    Children the user cannot read are left out together with their
    subtrees. The caller is responsible for ``node`` itself being
    readable.
    """
    if node.is_file:
        return TreeView(
            id=node.id,
            name=node.name,
            node_type=node.node_type,
            permissions=node.permissions,
            content=node.content or "",
        )

    readable = [child for child in store.find_children(node.id) if can_read(child, user_id)]
    return TreeView(
        id=node.id,
        name=node.name,
        node_type=node.node_type,
        permissions=node.permissions,
        children=[materialize(store, child, user_id) for child in sort_nodes(readable)],
    )
