"""
System seeding and home directory provisioning tests.

Run with: python -m pytest tests/test_provisioning.py -v
"""

import threading
import unittest

from linsim.core.config_loader import FilesystemConfig, ProvisioningConfig
from linsim.exceptions import BadRequestError, BootFailureError
from linsim.filesystem.node import NodeType
from linsim.filesystem.path_resolver import PathResolver
from linsim.filesystem.provisioning import provision_home, seed_system_nodes

from tests.support import ALICE, BOB, make_store


class TestSeedSystemNodes(unittest.TestCase):
    """Test creation of the root and the shared directories."""

    def setUp(self):
        self.store = make_store()

    def tearDown(self):
        self.store.cleanup()

    def test_seed_creates_root_and_directories(self):
        root = seed_system_nodes(self.store, FilesystemConfig())

        self.assertTrue(root.is_root)
        self.assertEqual(root.name, "/")
        self.assertIsNone(root.owner_id)
        self.assertEqual(root.permissions, "rwxr-xr-x")

        children = {n.name: n for n in self.store.find_children(root.id)}
        self.assertEqual(set(children), {"bin", "etc", "home", "tmp", "usr", "var"})
        self.assertEqual(children["tmp"].permissions, "rwxrwxrwx")
        for node in children.values():
            self.assertIsNone(node.owner_id)
            self.assertTrue(node.is_directory)

        self.assertTrue(self.store.exists(children["var"].id, "log"))

    def test_seed_is_idempotent(self):
        first = seed_system_nodes(self.store, FilesystemConfig())
        count = len(self.store.find_children(first.id))

        second = seed_system_nodes(self.store, FilesystemConfig())
        self.assertEqual(first.id, second.id)
        self.assertEqual(len(self.store.find_children(second.id)), count)

    def test_intermediate_directories_get_defaults(self):
        config = FilesystemConfig(system_directories=[("srv/www", "rwxrwxr-x")])
        seed_system_nodes(self.store, config)

        resolver = PathResolver(self.store)
        self.assertEqual(resolver.resolve("/srv", None).permissions, "rwxr-xr-x")
        self.assertEqual(resolver.resolve("/srv/www", None).permissions, "rwxrwxr-x")

    def test_file_in_the_way_fails_boot(self):
        root = seed_system_nodes(self.store, FilesystemConfig(system_directories=[]))
        self.store.create(None, root.id, "bin", NodeType.FILE)

        with self.assertRaises(BootFailureError):
            seed_system_nodes(self.store, FilesystemConfig())

    def test_concurrent_seeding(self):
        errors = []

        def worker():
            try:
                seed_system_nodes(self.store, FilesystemConfig())
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(self.store.find_children(None)), 1)
        self.assertEqual(len(self.store.find_children(self.store.find_root().id)), 6)


class TestProvisionHome(unittest.TestCase):
    """Test personal home directories."""

    def setUp(self):
        self.store = make_store(seed=True)
        self.config = ProvisioningConfig()

    def tearDown(self):
        self.store.cleanup()

    def test_creates_home_and_welcome_file(self):
        home = provision_home(self.store, ALICE, "alice", self.config)

        self.assertEqual(home.name, "alice")
        self.assertEqual(home.owner_id, ALICE)
        self.assertEqual(home.permissions, "rwx------")

        welcome = self.store.find_by_parent_and_name(home.id, "welcome.txt")
        self.assertEqual(welcome.owner_id, ALICE)
        self.assertEqual(welcome.permissions, "rw-r--r--")
        self.assertIn("/home/alice", welcome.content)
        self.assertNotIn("{username}", welcome.content)

    def test_existing_home_is_returned(self):
        first = provision_home(self.store, ALICE, "alice", self.config)
        second = provision_home(self.store, ALICE, "alice", self.config)

        self.assertEqual(first.id, second.id)
        self.assertEqual(len(self.store.find_children(first.id)), 1)

    def test_custom_template(self):
        config = ProvisioningConfig(welcome_file="README", welcome_template="hi {username}")
        home = provision_home(self.store, BOB, "bob", config)

        readme = self.store.find_by_parent_and_name(home.id, "README")
        self.assertEqual(readme.content, "hi bob")

    def test_invalid_username(self):
        for username in ("", "a/b"):
            with self.assertRaises(BadRequestError):
                provision_home(self.store, ALICE, username, self.config)

    def test_missing_home_directory(self):
        store = make_store()
        seed_system_nodes(store, FilesystemConfig(system_directories=[("tmp", "rwxrwxrwx")]))
        self.assertIsNone(provision_home(store, ALICE, "alice", self.config))
        store.cleanup()

    def test_missing_root(self):
        store = make_store()
        self.assertIsNone(provision_home(store, ALICE, "alice", self.config))
        store.cleanup()

    def test_concurrent_provisioning(self):
        results = []
        lock = threading.Lock()

        def worker():
            node = provision_home(self.store, ALICE, "alice", self.config)
            with lock:
                results.append(node.id)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(results), 8)
        self.assertEqual(len(set(results)), 1)
        self.assertEqual(len(self.store.find_children(results[0])), 1)


if __name__ == '__main__':
    unittest.main()
