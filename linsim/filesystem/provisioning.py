"""
Provisioning Module

Seeds the system-owned part of the tree (the root and the shared
directories under it) and creates personal home directories.

Both routines are idempotent and safe to run concurrently: each
check-then-insert happens in one store transaction, and a duplicate
insert by a concurrent writer (ConflictError) counts as success.

Version: 1.0.0
"""

from typing import Optional, TYPE_CHECKING

from linsim.core.config_loader import FilesystemConfig, ProvisioningConfig, get_config
from linsim.exceptions import BadRequestError, BootFailureError, ConflictError
from linsim.logger import get_logger

from .node import Node, NodeType, ROOT_NAME, is_valid_name
from .path_resolver import PathResolver

if TYPE_CHECKING:
    from .store import NodeStore


_logger = get_logger('provisioning')


def _ensure_directory(
    store: 'NodeStore',
    parent_id: Optional[int],
    name: str,
    permissions: Optional[str] = None
) -> Node:
    """Return the system directory ``name`` under ``parent_id``, creating it if needed."""
    try:
        with store.transaction():
            existing = store.find_by_parent_and_name(parent_id, name)
            if existing is None:
                created = store.create(None, parent_id, name, NodeType.DIRECTORY, permissions=permissions)
                _logger.info(
                    "Seeded system directory",
                    context={'node_id': created.id, 'name': name, 'permissions': created.permissions}
                )
                return created
    except ConflictError:
        _logger.debug("System directory seeded concurrently", context={'name': name})
        existing = store.find_by_parent_and_name(parent_id, name)
        if existing is None:
            raise

    if not existing.is_directory:
        raise BootFailureError(
            f"System path component is not a directory: {name}",
            subsystem="provisioning",
            context={'node_id': existing.id}
        )
    return existing


def seed_system_nodes(store: 'NodeStore', config: Optional[FilesystemConfig] = None) -> Node:
    """
    Create the root and the shared system directories if missing.

    System nodes have no owner. Intermediate components of nested
    entries (``var`` for ``var/log``) get default directory permissions
    unless they are listed themselves.

    Returns:
        The root node
    """
    config = config or get_config().filesystem

    root = _ensure_directory(store, None, ROOT_NAME)

    for path, permissions in config.system_directories:
        components = PathResolver.parse(path).components
        parent = root
        for index, component in enumerate(components):
            is_last = index == len(components) - 1
            parent = _ensure_directory(store, parent.id, component, permissions if is_last else None)

    return root


def provision_home(
    store: 'NodeStore',
    user_id: int,
    username: str,
    config: Optional[ProvisioningConfig] = None
) -> Optional[Node]:
    """
    Create ``/home/<username>`` with a welcome file for ``user_id``.

    Returns:
        The user's home directory, or None if the shared root or home
        directory has not been seeded

    Raises:
        BadRequestError: If ``username`` is not a valid node name
    """
    config = config or get_config().provisioning

    if not is_valid_name(username):
        raise BadRequestError("Invalid username", reason=repr(username))

    root = store.find_root()
    if root is None:
        _logger.warning("Shared root not found, skipping home directory provisioning", user_id=user_id)
        return None

    home = store.find_by_parent_and_name(root.id, config.home_directory)
    if home is None or not home.is_directory:
        _logger.warning(
            f"Shared /{config.home_directory} not found, skipping home directory provisioning",
            user_id=user_id
        )
        return None

    try:
        with store.transaction():
            existing = store.find_by_parent_and_name(home.id, username)
            if existing is not None:
                return existing

            home_dir = store.create(
                user_id,
                home.id,
                username,
                NodeType.DIRECTORY,
                permissions=config.home_permissions
            )
            store.create(
                user_id,
                home_dir.id,
                config.welcome_file,
                NodeType.FILE,
                content=config.welcome_template.replace("{username}", username),
                permissions=config.welcome_permissions
            )
    except ConflictError:
        _logger.debug("Home directory provisioned concurrently", user_id=user_id, context={'username': username})
        existing = store.find_by_parent_and_name(home.id, username)
        if existing is None:
            raise
        return existing

    _logger.info(
        f"Provisioned home directory /{config.home_directory}/{username}",
        user_id=user_id,
        context={'node_id': home_dir.id}
    )
    return home_dir
