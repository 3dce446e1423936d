"""
Shared fixtures for the linsim test suite.

Every store is a private in-memory SQLite database, so tests never
share state.
"""

from linsim.core.config_loader import Config, DatabaseConfig
from linsim.filesystem.engine import FilesystemEngine
from linsim.filesystem.store import NodeStore


ALICE = 1
BOB = 2
CAROL = 3


def make_store(seed: bool = False) -> NodeStore:
    """A fresh in-memory store, optionally seeded with the system directories."""
    store = NodeStore(DatabaseConfig(url="sqlite://"))
    store.initialize()
    if seed:
        from linsim.filesystem.provisioning import seed_system_nodes
        seed_system_nodes(store, Config().filesystem)
    return store


def make_engine(config: Config = None) -> FilesystemEngine:
    """A booted engine over a fresh in-memory store."""
    config = config or Config()
    engine = FilesystemEngine(make_store(), config)
    engine.initialize()
    return engine
