"""
Filesystem Engine Module

The public operation surface of the virtual filesystem:
- Lookups by id and by path
- Directory listings and tree views
- Create, update (rename, edit content, chmod), delete and move
- Home directory provisioning

Every operation takes the acting user's id, runs inside one store
transaction and either returns normally or raises exactly one of
NotFoundError, BadRequestError, ConflictError or ForbiddenError.
Permission failures on read paths are reported as absence.

Version: 1.0.0
"""

from typing import Optional, List, Union

from linsim.core.config_loader import Config, get_config
from linsim.core.subsystem import Subsystem, SubsystemState
from linsim.exceptions import (
    BadRequestError,
    ConflictError,
    FileSystemException,
    ForbiddenError,
    NotFoundError,
)

from .node import Node, NodeType, ROOT_NAME, is_valid_name
from .path_resolver import PathResolver
from .permissions import can_read, can_write, is_owner, validate_permissions
from .provisioning import provision_home, seed_system_nodes
from .store import NodeStore
from .tree import TreeView, materialize, sort_nodes


# Rule violations, as opposed to store failures.
_REJECTIONS = (NotFoundError, BadRequestError, ConflictError, ForbiddenError)


class FilesystemEngine(Subsystem):
    """
    Filesystem Engine Subsystem.

    Stateless apart from its store, so one instance can serve any
    number of concurrent callers.

    Example:
        >>> engine = FilesystemEngine(NodeStore(DatabaseConfig(url="sqlite://")))
        >>> engine.initialize()
        >>> tmp = engine.get_node_by_path(1, "/tmp")
        >>> engine.create_node(1, tmp.id, "notes.txt", "file", content="hello")
    """

    def __init__(self, store: Optional[NodeStore] = None, config: Optional[Config] = None):
        super().__init__('engine')
        self._config = config or get_config()
        self._store = store or NodeStore(self._config.database)
        self._resolver = PathResolver(self._store)

    @property
    def store(self) -> NodeStore:
        return self._store

    @property
    def resolver(self) -> PathResolver:
        return self._resolver

    def initialize(self) -> None:
        """Initialize the store and seed the system directories."""
        if self._store.state != SubsystemState.INITIALIZED:
            self._store.initialize()

        root = seed_system_nodes(self._store, self._config.filesystem)
        self._logger.info("Filesystem engine ready", context={'root_id': root.id})
        self.set_state(SubsystemState.INITIALIZED)

    def cleanup(self) -> None:
        self._store.cleanup()
        self.set_state(SubsystemState.STOPPED)

    def _log_rejection(self, operation: str, user_id: int, error: FileSystemException) -> None:
        self._logger.warning(
            f"Rejected {operation}: {error.message}",
            user_id=user_id,
            context={**error.context, 'operation': operation}
        )

    @staticmethod
    def _node_type(value: Union[NodeType, str]) -> NodeType:
        try:
            return NodeType(value)
        except ValueError:
            raise BadRequestError("Invalid node type", reason=repr(value))

    # Reads

    def get_node_by_id(self, user_id: int, node_id: int) -> Optional[Node]:
        """Return the node, or None if it does not exist or is unreadable."""
        node = self._store.find_by_id(node_id)
        if node is None or not can_read(node, user_id):
            return None
        return node

    def get_node_by_path(self, user_id: int, path: str) -> Optional[Node]:
        """Resolve an absolute path; see PathResolver.resolve."""
        return self._resolver.resolve(path, user_id)

    def get_children(self, user_id: int, parent_id: Optional[int]) -> List[Node]:
        """
        List the readable children of a directory.

        Args:
            user_id: Acting user
            parent_id: Directory to list; None lists the root itself

        Returns:
            Readable children, directories first, then by name

        Raises:
            ForbiddenError: If the parent is missing or unreadable
        """
        with self._store.transaction():
            if parent_id is not None:
                parent = self._store.find_by_id(parent_id)
                if parent is None or not can_read(parent, user_id):
                    raise ForbiddenError(node_id=parent_id, operation="read", user_id=user_id)
            children = self._store.find_children(parent_id)

        return sort_nodes(child for child in children if can_read(child, user_id))

    def get_tree(self, user_id: int, node_id: Optional[int] = None) -> TreeView:
        """
        Materialize the subtree at ``node_id`` (the root when None).

        Raises:
            NotFoundError: If the start node is missing or unreadable
        """
        with self._store.transaction():
            if node_id is None:
                start = self._resolver.resolve(ROOT_NAME, user_id)
            else:
                start = self.get_node_by_id(user_id, node_id)

            if start is None:
                raise NotFoundError(node_id=node_id)

            return materialize(self._store, start, user_id)

    # Mutations

    def create_node(
        self,
        user_id: int,
        parent_id: Optional[int],
        name: str,
        node_type: Union[NodeType, str],
        content: Optional[str] = None,
        permissions: Optional[str] = None
    ) -> Node:
        """
        Create a file or directory owned by ``user_id``.

        Raises:
            NotFoundError: If the parent does not exist
            BadRequestError: If the parent is missing or not a directory,
                or the name, type or permissions are invalid
            ForbiddenError: If the parent is not writable
            ConflictError: If the parent already has a child of that name
        """
        try:
            with self._store.transaction():
                if parent_id is None:
                    raise BadRequestError("A parent directory is required")

                parent = self._store.find_by_id(parent_id)
                if parent is None:
                    raise NotFoundError("Parent directory not found", node_id=parent_id)
                if not parent.is_directory:
                    raise BadRequestError("Parent is not a directory", node_id=parent_id)
                if not can_write(parent, user_id):
                    raise ForbiddenError(node_id=parent_id, operation="write", user_id=user_id)

                if not is_valid_name(name):
                    raise BadRequestError("Invalid name", reason=repr(name))
                kind = self._node_type(node_type)
                if permissions is not None and not validate_permissions(permissions):
                    raise BadRequestError("Invalid permissions", reason=repr(permissions))

                if self._store.exists(parent_id, name):
                    raise ConflictError(
                        "A node with this name already exists",
                        parent_id=parent_id,
                        name=name
                    )

                node = self._store.create(
                    user_id,
                    parent_id,
                    name,
                    kind,
                    content=content,
                    permissions=permissions
                )
        except _REJECTIONS as e:
            self._log_rejection("create", user_id, e)
            raise

        self._logger.info(
            f"Created {node.node_type.value}",
            user_id=user_id,
            context={'node_id': node.id, 'parent_id': parent_id, 'name': name}
        )
        return node

    def update_node(
        self,
        user_id: int,
        node_id: int,
        name: Optional[str] = None,
        content: Optional[str] = None,
        permissions: Optional[str] = None
    ) -> Node:
        """
        Rename a node, replace a file's content or change permissions.

        ``name`` and ``content`` need write permission on the node;
        ``permissions`` may only be changed by the owner. Content sent
        for a directory is ignored. Values equal to the current ones are
        not changes, and a call without changes returns the node as is.

        Raises:
            NotFoundError: If the node does not exist
            BadRequestError: For the root, an invalid name or invalid permissions
            ForbiddenError: If the caller lacks write permission or ownership
            ConflictError: If a sibling already has the new name
        """
        try:
            with self._store.transaction():
                node = self._store.find_by_id(node_id)
                if node is None:
                    raise NotFoundError(node_id=node_id)
                if node.is_root:
                    raise BadRequestError("The root directory cannot be modified", node_id=node_id)

                if (name is not None or content is not None) and not can_write(node, user_id):
                    raise ForbiddenError(node_id=node_id, operation="write", user_id=user_id)
                if name is not None and not is_valid_name(name):
                    raise BadRequestError("Invalid name", node_id=node_id, reason=repr(name))

                if permissions is not None:
                    if not is_owner(node, user_id):
                        raise ForbiddenError(
                            "Only the owner can change permissions",
                            node_id=node_id,
                            operation="chmod",
                            user_id=user_id
                        )
                    if not validate_permissions(permissions):
                        raise BadRequestError("Invalid permissions", node_id=node_id, reason=repr(permissions))

                changes = {}
                if name is not None and name != node.name:
                    changes['name'] = name
                if content is not None and node.is_file and content != node.content:
                    changes['content'] = content
                if permissions is not None and permissions != node.permissions:
                    changes['permissions'] = permissions

                if not changes:
                    return node

                if 'name' in changes and self._store.exists(node.parent_id, name):
                    raise ConflictError(
                        "A node with this name already exists",
                        parent_id=node.parent_id,
                        name=name
                    )

                updated = self._store.update_fields(node_id, **changes)
        except _REJECTIONS as e:
            self._log_rejection("update", user_id, e)
            raise

        self._logger.info(
            "Updated node",
            user_id=user_id,
            context={'node_id': node_id, 'fields': ",".join(sorted(changes))}
        )
        return updated

    def delete_node(self, user_id: int, node_id: int) -> None:
        """
        Delete a file or an empty directory.

        Deleting unlinks the node from its parent, so it needs write
        permission on the parent, not on the node.

        Raises:
            NotFoundError: If the node does not exist
            BadRequestError: For the root or a non-empty directory
            ForbiddenError: If the parent is not writable
        """
        try:
            with self._store.transaction():
                node = self._store.find_by_id(node_id)
                if node is None:
                    raise NotFoundError(node_id=node_id)
                if node.is_root:
                    raise BadRequestError("The root directory cannot be deleted", node_id=node_id)

                parent = self._store.find_by_id(node.parent_id)
                if parent is None or not can_write(parent, user_id):
                    raise ForbiddenError(node_id=node.parent_id, operation="write", user_id=user_id)

                if node.is_directory and self._store.has_children(node_id):
                    raise BadRequestError("Directory not empty", node_id=node_id)

                self._store.delete(node_id)
        except _REJECTIONS as e:
            self._log_rejection("delete", user_id, e)
            raise

        self._logger.info(
            f"Deleted {node.node_type.value}",
            user_id=user_id,
            context={'node_id': node_id, 'parent_id': node.parent_id, 'name': node.name}
        )

    def move_node(self, user_id: int, node_id: int, new_parent_id: int) -> Node:
        """
        Move a node under another directory.

        The cycle check and the reparent run in the same transaction,
        so a concurrent move cannot slip a cycle past the check.

        Raises:
            NotFoundError: If the node does not exist
            BadRequestError: If the destination is missing or not a
                directory, the node is the root, or the destination lies
                inside the node
            ForbiddenError: If either the current parent or the
                destination is not writable
            ConflictError: If the destination already has a node of that name
        """
        try:
            with self._store.transaction():
                node = self._store.find_by_id(node_id)
                if node is None:
                    raise NotFoundError(node_id=node_id)

                destination = self._store.find_by_id(new_parent_id)
                if destination is None or not destination.is_directory:
                    raise BadRequestError("Destination is not a directory", node_id=new_parent_id)

                if node.is_root:
                    raise BadRequestError("The root directory cannot be moved", node_id=node_id)

                source_parent = self._store.find_by_id(node.parent_id)
                if source_parent is None or not can_write(source_parent, user_id):
                    raise ForbiddenError(node_id=node.parent_id, operation="write", user_id=user_id)
                if not can_write(destination, user_id):
                    raise ForbiddenError(node_id=new_parent_id, operation="write", user_id=user_id)

                if self._store.is_descendant(node_id, new_parent_id):
                    raise BadRequestError(
                        "Cannot move a directory into itself or one of its descendants",
                        node_id=node_id
                    )

                existing = self._store.find_by_parent_and_name(new_parent_id, node.name)
                if existing is not None and existing.id != node_id:
                    raise ConflictError(
                        "A node with this name already exists",
                        parent_id=new_parent_id,
                        name=node.name
                    )

                moved = self._store.reparent(node_id, new_parent_id)
        except _REJECTIONS as e:
            self._log_rejection("move", user_id, e)
            raise

        self._logger.info(
            "Moved node",
            user_id=user_id,
            context={'node_id': node_id, 'from': node.parent_id, 'to': new_parent_id}
        )
        return moved

    def provision_home(self, user_id: int, username: str) -> Optional[Node]:
        """Create ``/home/<username>`` for a user; see provisioning.provision_home."""
        return provision_home(self._store, user_id, username, self._config.provisioning)
