"""
Path Resolver Module

Translates slash-separated paths into nodes by walking the tree from
the root, checking permissions at every hop.

Version: 1.0.0
"""

from dataclasses import dataclass
from typing import Optional, List, TYPE_CHECKING

from .node import Node, ROOT_NAME, PATH_SEPARATOR
from .permissions import can_execute, can_read

if TYPE_CHECKING:
    from .store import NodeStore


@dataclass
class ParsedPath:
    """A parsed path with its components."""
    components: List[str]

    @property
    def is_root(self) -> bool:
        return not self.components

    def __str__(self) -> str:
        return PATH_SEPARATOR + PATH_SEPARATOR.join(self.components)


class PathResolver:
    """
    Resolves paths against the node store on behalf of a user.

    Every path is taken from the root. Empty segments are dropped;
    '.' and '..' are ordinary names and are looked up like any other.
    A directory without execute permission, a missing component and an
    unreadable target all resolve to None, so a caller cannot tell an
    inaccessible path from a missing one.

    Example:
        >>> resolver = PathResolver(store)
        >>> resolver.resolve('/home/alice/welcome.txt', user_id=1)
    """

    def __init__(self, store: 'NodeStore'):
        self._store = store

    @staticmethod
    def parse(path: str) -> ParsedPath:
        """
        Parse a path into components.

        Args:
            path: Path string to parse

        Returns:
            ParsedPath with the non-empty components
        """
        return ParsedPath(components=[c for c in path.split(PATH_SEPARATOR) if c])

    def resolve(self, path: str, user_id: Optional[int]) -> Optional[Node]:
        """
        Resolve a path to a node visible to ``user_id``.

        Args:
            path: Slash-separated path, taken from the root
            user_id: Acting user

        Returns:
            The node, or None if it does not exist or is not accessible
        """
        with self._store.transaction():
            current = self._store.find_root()
            if current is None:
                return None

            if path != ROOT_NAME:
                for component in self.parse(path).components:
                    if not current.is_directory or not can_execute(current, user_id):
                        return None
                    current = self._store.find_by_parent_and_name(current.id, component)
                    if current is None:
                        return None

            if not can_read(current, user_id):
                return None
            return current
