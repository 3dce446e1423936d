"""
Node store tests.

Run with: python -m pytest tests/test_store.py -v
"""

import threading
import unittest

from linsim.core.config_loader import DatabaseConfig
from linsim.core.subsystem import SubsystemState
from linsim.exceptions import BadRequestError, ConflictError, NotFoundError, StoreError
from linsim.filesystem.node import NodeType, ROOT_NAME
from linsim.filesystem.store import NodeStore

from tests.support import ALICE, make_store


class TestNodeStoreLifecycle(unittest.TestCase):
    """Test store initialization and teardown."""

    def test_initialize_sets_state(self):
        store = make_store()
        self.assertEqual(store.state, SubsystemState.INITIALIZED)
        self.assertTrue(store.health_check())
        self.assertIsNotNone(store.engine)

        store.cleanup()
        self.assertEqual(store.state, SubsystemState.STOPPED)
        self.assertIsNone(store.engine)

    def test_transaction_requires_initialize(self):
        store = NodeStore(DatabaseConfig(url="sqlite://"))
        with self.assertRaises(StoreError):
            with store.transaction():
                pass


class TestNodeStoreCreate(unittest.TestCase):
    """Test inserts and their defaults."""

    def setUp(self):
        self.store = make_store()
        self.root = self.store.create(None, None, ROOT_NAME, NodeType.DIRECTORY)

    def tearDown(self):
        self.store.cleanup()

    def test_root(self):
        self.assertTrue(self.root.is_root)
        self.assertIsNone(self.root.owner_id)
        self.assertEqual(self.store.find_root(), self.root)

    def test_default_permissions(self):
        directory = self.store.create(ALICE, self.root.id, "dir", NodeType.DIRECTORY)
        file = self.store.create(ALICE, self.root.id, "file", NodeType.FILE)

        self.assertEqual(directory.permissions, "rwxr-xr-x")
        self.assertEqual(file.permissions, "rw-r--r--")

    def test_content_only_on_files(self):
        directory = self.store.create(ALICE, self.root.id, "dir", "directory", content="ignored")
        file = self.store.create(ALICE, self.root.id, "file", "file")

        self.assertIsNone(directory.content)
        self.assertEqual(file.content, "")

    def test_timestamps_are_set(self):
        node = self.store.create(ALICE, self.root.id, "file", NodeType.FILE)
        self.assertIsNotNone(node.created_at)
        self.assertEqual(node.created_at, node.updated_at)
        self.assertIsNotNone(node.created_at.tzinfo)

    def test_invalid_permissions(self):
        with self.assertRaises(BadRequestError):
            self.store.create(ALICE, self.root.id, "file", NodeType.FILE, permissions="rw")

    def test_duplicate_sibling_conflicts(self):
        self.store.create(ALICE, self.root.id, "same", NodeType.FILE)
        with self.assertRaises(ConflictError):
            self.store.create(ALICE, self.root.id, "same", NodeType.DIRECTORY)

    def test_second_root_conflicts(self):
        with self.assertRaises(ConflictError):
            self.store.create(None, None, ROOT_NAME, NodeType.DIRECTORY)

    def test_second_parentless_node_conflicts(self):
        with self.assertRaises(ConflictError):
            self.store.create(None, None, "other", NodeType.DIRECTORY)
        self.assertEqual(self.store.find_children(None), [self.root])

    def test_same_name_under_different_parents(self):
        a = self.store.create(ALICE, self.root.id, "a", NodeType.DIRECTORY)
        b = self.store.create(ALICE, self.root.id, "b", NodeType.DIRECTORY)
        self.store.create(ALICE, a.id, "x", NodeType.FILE)
        self.store.create(ALICE, b.id, "x", NodeType.FILE)

        self.assertIsNotNone(self.store.find_by_parent_and_name(a.id, "x"))
        self.assertIsNotNone(self.store.find_by_parent_and_name(b.id, "x"))


class TestNodeStoreLookups(unittest.TestCase):
    """Test primitive lookups."""

    def setUp(self):
        self.store = make_store()
        self.root = self.store.create(None, None, ROOT_NAME, NodeType.DIRECTORY)
        self.dir = self.store.create(ALICE, self.root.id, "dir", NodeType.DIRECTORY)
        self.file = self.store.create(ALICE, self.dir.id, "file", NodeType.FILE)

    def tearDown(self):
        self.store.cleanup()

    def test_find_by_id(self):
        self.assertEqual(self.store.find_by_id(self.file.id), self.file)
        self.assertIsNone(self.store.find_by_id(9999))

    def test_exists(self):
        self.assertTrue(self.store.exists(self.dir.id, "file"))
        self.assertFalse(self.store.exists(self.dir.id, "other"))
        self.assertTrue(self.store.exists(None, ROOT_NAME))

    def test_find_children(self):
        self.assertEqual([n.id for n in self.store.find_children(self.root.id)], [self.dir.id])
        self.assertEqual([n.id for n in self.store.find_children(None)], [self.root.id])
        self.assertEqual(self.store.find_children(self.file.id), [])

    def test_has_children(self):
        self.assertTrue(self.store.has_children(self.dir.id))
        self.assertFalse(self.store.has_children(self.file.id))

    def test_find_by_owner(self):
        owned = self.store.find_by_owner(ALICE)
        self.assertEqual({n.id for n in owned}, {self.dir.id, self.file.id})
        self.assertEqual(self.store.find_by_owner(42), [])


class TestNodeStoreMutations(unittest.TestCase):
    """Test updates, reparenting and deletion."""

    def setUp(self):
        self.store = make_store()
        self.root = self.store.create(None, None, ROOT_NAME, NodeType.DIRECTORY)
        self.dir = self.store.create(ALICE, self.root.id, "dir", NodeType.DIRECTORY)
        self.file = self.store.create(ALICE, self.root.id, "file", NodeType.FILE, content="a")

    def tearDown(self):
        self.store.cleanup()

    def test_update_fields_advances_updated_at(self):
        updated = self.store.update_fields(self.file.id, content="b")
        self.assertEqual(updated.content, "b")
        self.assertGreater(updated.updated_at, self.file.updated_at)
        self.assertEqual(updated.created_at, self.file.created_at)

    def test_update_fields_leaves_others_untouched(self):
        updated = self.store.update_fields(self.file.id, permissions="rw-------")
        self.assertEqual(updated.permissions, "rw-------")
        self.assertEqual(updated.name, "file")
        self.assertEqual(updated.content, "a")

    def test_update_fields_ignores_directory_content(self):
        updated = self.store.update_fields(self.dir.id, content="text")
        self.assertIsNone(updated.content)

    def test_update_missing_node(self):
        with self.assertRaises(NotFoundError):
            self.store.update_fields(9999, name="x")

    def test_rename_onto_sibling_conflicts(self):
        with self.assertRaises(ConflictError):
            self.store.update_fields(self.file.id, name="dir")
        self.assertEqual(self.store.find_by_id(self.file.id).name, "file")

    def test_reparent(self):
        moved = self.store.reparent(self.file.id, self.dir.id)
        self.assertEqual(moved.parent_id, self.dir.id)
        self.assertEqual(self.store.find_children(self.dir.id), [moved])

    def test_delete(self):
        self.store.delete(self.file.id)
        self.assertIsNone(self.store.find_by_id(self.file.id))

    def test_delete_with_children_violates_foreign_key(self):
        self.store.create(ALICE, self.dir.id, "child", NodeType.FILE)
        with self.assertRaises(StoreError):
            self.store.delete(self.dir.id)
        self.assertIsNotNone(self.store.find_by_id(self.dir.id))


class TestNodeStoreDescendants(unittest.TestCase):
    """Test the recursive descendant query."""

    def setUp(self):
        self.store = make_store()
        self.root = self.store.create(None, None, ROOT_NAME, NodeType.DIRECTORY)
        self.a = self.store.create(ALICE, self.root.id, "a", NodeType.DIRECTORY)
        self.b = self.store.create(ALICE, self.a.id, "b", NodeType.DIRECTORY)
        self.c = self.store.create(ALICE, self.b.id, "c", NodeType.DIRECTORY)
        self.other = self.store.create(ALICE, self.root.id, "other", NodeType.DIRECTORY)

    def tearDown(self):
        self.store.cleanup()

    def test_node_is_its_own_descendant(self):
        self.assertTrue(self.store.is_descendant(self.a.id, self.a.id))

    def test_deep_descendant(self):
        self.assertTrue(self.store.is_descendant(self.a.id, self.c.id))
        self.assertTrue(self.store.is_descendant(self.root.id, self.c.id))

    def test_not_descendant(self):
        self.assertFalse(self.store.is_descendant(self.c.id, self.a.id))
        self.assertFalse(self.store.is_descendant(self.a.id, self.other.id))


class TestNodeStoreTransactions(unittest.TestCase):
    """Test commit, rollback and nesting."""

    def setUp(self):
        self.store = make_store()
        self.root = self.store.create(None, None, ROOT_NAME, NodeType.DIRECTORY)

    def tearDown(self):
        self.store.cleanup()

    def test_rollback_on_exception(self):
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.store.create(ALICE, self.root.id, "gone", NodeType.FILE)
                raise RuntimeError("abort")

        self.assertFalse(self.store.exists(self.root.id, "gone"))

    def test_rollback_on_keyboard_interrupt(self):
        with self.assertRaises(KeyboardInterrupt):
            with self.store.transaction():
                self.store.create(ALICE, self.root.id, "gone", NodeType.FILE)
                raise KeyboardInterrupt

        self.assertFalse(self.store.exists(self.root.id, "gone"))

    def test_nested_transaction_reads_own_writes(self):
        with self.store.transaction():
            created = self.store.create(ALICE, self.root.id, "mine", NodeType.FILE)
            with self.store.transaction():
                self.assertEqual(self.store.find_by_parent_and_name(self.root.id, "mine"), created)

        self.assertTrue(self.store.exists(self.root.id, "mine"))

    def test_conflict_rolls_back_whole_transaction(self):
        with self.assertRaises(ConflictError):
            with self.store.transaction():
                self.store.create(ALICE, self.root.id, "first", NodeType.FILE)
                self.store.create(ALICE, self.root.id, "dup", NodeType.FILE)
                self.store.create(ALICE, self.root.id, "dup", NodeType.FILE)

        self.assertFalse(self.store.exists(self.root.id, "first"))

    def test_concurrent_creates_of_same_name(self):
        """Exactly one of many racing inserts of the same name wins."""
        outcomes = []
        lock = threading.Lock()

        def worker():
            try:
                self.store.create(ALICE, self.root.id, "race", NodeType.FILE)
                result = "created"
            except ConflictError:
                result = "conflict"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(outcomes.count("created"), 1)
        self.assertEqual(outcomes.count("conflict"), 7)


if __name__ == '__main__':
    unittest.main()
