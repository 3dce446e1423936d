"""
Node Store Module

Durable adjacency-list storage for filesystem nodes, backed by
SQLAlchemy. Provides primitive lookups, atomic mutation primitives and
the transaction scope the engine composes them in.

Transactions:
    ``transaction()`` opens a session and a database transaction. Calls
    made on the same thread while a transaction is open join it, so a
    multi-step operation reads its own writes and commits or rolls back
    as a unit. Outermost transactions are serialized per store. On
    SQLite every transaction opens with BEGIN IMMEDIATE, so it holds the
    database write lock from its first read and other stores or
    processes on the same file wait for it. Other backends run at the
    configured isolation level (SERIALIZABLE by default).

Version: 1.0.0
"""

import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Iterator, Union

from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased, sessionmaker
from sqlalchemy.pool import StaticPool

from linsim.core.config_loader import DatabaseConfig, get_config
from linsim.core.subsystem import Subsystem, SubsystemState
from linsim.exceptions import (
    BadRequestError,
    BootFailureError,
    ConflictError,
    NotFoundError,
    StoreError,
)

from .models import Base, NodeModel, utcnow
from .node import Node, NodeType, ROOT_NAME
from .permissions import Permission, format_permissions, parse_permissions, validate_permissions


DEFAULT_DIRECTORY_PERMISSIONS = format_permissions(Permission.DEFAULT_DIR)
DEFAULT_FILE_PERMISSIONS = format_permissions(Permission.DEFAULT_FILE)


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # Stop pysqlite from issuing its own deferred BEGIN; _begin_immediate does it.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(connection) -> None:
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message or "duplicate" in message


class NodeStore(Subsystem):
    """
    Node Store Subsystem.

    Example:
        >>> store = NodeStore(DatabaseConfig(url="sqlite://"))
        >>> store.initialize()
        >>> with store.transaction():
        ...     root = store.create(None, None, "/", NodeType.DIRECTORY)
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        super().__init__('store')
        self._config = config or get_config().database
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = threading.RLock()
        self._local = threading.local()

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    def initialize(self) -> None:
        """
        Connect to the database and create the schema if needed.

        Raises:
            BootFailureError: If the URL is malformed, its driver is not
                installed or the database cannot be reached
        """
        try:
            url = make_url(self._config.url)
            self._logger.info(
                "Initializing node store",
                context={'url': url.render_as_string(hide_password=True)}
            )
            self._engine = self._create_engine(url)
            Base.metadata.create_all(self._engine)
        except (SQLAlchemyError, ImportError) as e:
            self.set_state(SubsystemState.ERROR)
            raise BootFailureError(f"Cannot initialize node store: {e}", subsystem="store") from e

        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        self.set_state(SubsystemState.INITIALIZED)

    def _create_engine(self, url: URL) -> Engine:
        kwargs = {'echo': self._config.echo}

        is_sqlite = url.get_backend_name() == 'sqlite'
        if self._config.isolation_level and not is_sqlite:
            kwargs['isolation_level'] = self._config.isolation_level

        if is_sqlite:
            kwargs['connect_args'] = {'check_same_thread': False}
            if url.database in (None, '', ':memory:'):
                # One shared connection, otherwise every checkout sees an empty database.
                kwargs['poolclass'] = StaticPool

        engine = create_engine(url, **kwargs)
        if is_sqlite:
            event.listen(engine, 'connect', _configure_sqlite_connection)
            event.listen(engine, 'begin', _begin_immediate)
        return engine

    def cleanup(self) -> None:
        """Dispose of pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
        self.set_state(SubsystemState.STOPPED)

    # Transactions

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run the enclosed block in one database transaction.

        Commits when the block exits normally and rolls back on any
        exception. Nested use on the same thread joins the open
        transaction.

        Raises:
            StoreError: If the database fails; the transaction is rolled back
        """
        active = getattr(self._local, 'session', None)
        if active is not None:
            yield active
            return

        if self._session_factory is None:
            raise StoreError("Node store is not initialized")

        with self._lock:
            session = self._session_factory()
            self._local.session = session
            try:
                with session.begin():
                    yield session
            except SQLAlchemyError as e:
                self._logger.error(
                    "Transaction rolled back",
                    context={'error': type(e).__name__}
                )
                raise StoreError(f"Store operation failed: {e}", cause=e) from e
            finally:
                self._local.session = None
                session.close()

    def _flush(self, session: Session, parent_id: Optional[int], name: Optional[str]) -> None:
        try:
            session.flush()
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise ConflictError(
                    "A node with this name already exists",
                    parent_id=parent_id,
                    name=name
                ) from e
            raise StoreError(f"Constraint violation: {e.orig}", cause=e) from e

    @staticmethod
    def _to_node(model: NodeModel) -> Node:
        return Node(
            id=model.id,
            owner_id=model.owner_id,
            parent_id=model.parent_id,
            name=model.name,
            node_type=NodeType(model.type),
            mode=parse_permissions(model.permissions),
            content=model.content,
            created_at=_as_utc(model.created_at),
            updated_at=_as_utc(model.updated_at),
        )

    @staticmethod
    def _next_timestamp(previous: Optional[datetime]) -> datetime:
        now = utcnow()
        previous = _as_utc(previous)
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    @staticmethod
    def _parent_clause(parent_id: Optional[int]):
        if parent_id is None:
            return NodeModel.parent_id.is_(None)
        return NodeModel.parent_id == parent_id

    def _require(self, session: Session, node_id: int) -> NodeModel:
        model = session.get(NodeModel, node_id)
        if model is None:
            raise NotFoundError(node_id=node_id)
        return model

    # Lookups

    def find_by_id(self, node_id: int) -> Optional[Node]:
        with self.transaction() as session:
            model = session.get(NodeModel, node_id)
            return self._to_node(model) if model is not None else None

    def find_root(self) -> Optional[Node]:
        with self.transaction() as session:
            model = session.scalars(
                select(NodeModel).where(
                    NodeModel.parent_id.is_(None),
                    NodeModel.name == ROOT_NAME
                )
            ).first()
            return self._to_node(model) if model is not None else None

    def find_by_parent_and_name(self, parent_id: Optional[int], name: str) -> Optional[Node]:
        with self.transaction() as session:
            model = session.scalars(
                select(NodeModel).where(
                    self._parent_clause(parent_id),
                    NodeModel.name == name
                )
            ).first()
            return self._to_node(model) if model is not None else None

    def find_children(self, parent_id: Optional[int]) -> List[Node]:
        """Direct children of ``parent_id``; None lists the parentless root."""
        with self.transaction() as session:
            models = session.scalars(
                select(NodeModel)
                .where(self._parent_clause(parent_id))
                .order_by(NodeModel.id)
            ).all()
            return [self._to_node(model) for model in models]

    def find_by_owner(self, owner_id: int) -> List[Node]:
        with self.transaction() as session:
            models = session.scalars(
                select(NodeModel)
                .where(NodeModel.owner_id == owner_id)
                .order_by(NodeModel.id)
            ).all()
            return [self._to_node(model) for model in models]

    def exists(self, parent_id: Optional[int], name: str) -> bool:
        with self.transaction() as session:
            found = session.scalars(
                select(NodeModel.id)
                .where(self._parent_clause(parent_id), NodeModel.name == name)
                .limit(1)
            ).first()
            return found is not None

    def has_children(self, node_id: int) -> bool:
        with self.transaction() as session:
            found = session.scalars(
                select(NodeModel.id).where(NodeModel.parent_id == node_id).limit(1)
            ).first()
            return found is not None

    def is_descendant(self, ancestor_id: int, candidate_id: int) -> bool:
        """
        True if ``candidate_id`` is ``ancestor_id`` or lies anywhere below it.

        Evaluated as one recursive query so it sees a single snapshot;
        run it in the same transaction as any write that depends on it.
        """
        if ancestor_id == candidate_id:
            return True

        with self.transaction() as session:
            subtree = (
                select(NodeModel.id)
                .where(NodeModel.id == ancestor_id)
                .cte(name="subtree", recursive=True)
            )
            child = aliased(NodeModel, name="child")
            # UNION rather than UNION ALL, so a corrupted cycle cannot recurse forever.
            subtree = subtree.union(
                select(child.id).where(child.parent_id == subtree.c.id)
            )
            found = session.execute(
                select(subtree.c.id).where(subtree.c.id == candidate_id).limit(1)
            ).first()
            return found is not None

    # Mutations

    def create(
        self,
        owner_id: Optional[int],
        parent_id: Optional[int],
        name: str,
        node_type: Union[NodeType, str],
        content: Optional[str] = None,
        permissions: Optional[str] = None
    ) -> Node:
        """
        Insert a node.

        Permissions default to rwxr-xr-x for directories and rw-r--r--
        for files. Files always get content (empty by default);
        directories never do.

        Raises:
            ConflictError: If ``(parent_id, name)`` is taken
            BadRequestError: If ``permissions`` is malformed
        """
        node_type = NodeType(node_type)

        if permissions is None:
            permissions = (
                DEFAULT_DIRECTORY_PERMISSIONS if node_type == NodeType.DIRECTORY
                else DEFAULT_FILE_PERMISSIONS
            )
        elif not validate_permissions(permissions):
            raise BadRequestError("Invalid permissions", reason=permissions)

        if node_type == NodeType.DIRECTORY:
            content = None
        elif content is None:
            content = ""

        with self.transaction() as session:
            now = utcnow()
            model = NodeModel(
                owner_id=owner_id,
                parent_id=parent_id,
                name=name,
                type=node_type.value,
                content=content,
                permissions=permissions,
                created_at=now,
                updated_at=now,
            )
            session.add(model)
            self._flush(session, parent_id, name)

            self._logger.debug(
                "Inserted node",
                user_id=owner_id,
                context={'node_id': model.id, 'parent_id': parent_id, 'name': name}
            )
            return self._to_node(model)

    def update_fields(
        self,
        node_id: int,
        name: Optional[str] = None,
        content: Optional[str] = None,
        permissions: Optional[str] = None
    ) -> Node:
        """
        Update the given fields and advance ``updated_at``.

        Fields passed as None are left untouched; content is never set
        on a directory.
        """
        if permissions is not None and not validate_permissions(permissions):
            raise BadRequestError("Invalid permissions", node_id=node_id, reason=permissions)

        with self.transaction() as session:
            model = self._require(session, node_id)

            if name is not None:
                model.name = name
            if content is not None and model.type == NodeType.FILE.value:
                model.content = content
            if permissions is not None:
                model.permissions = permissions
            model.updated_at = self._next_timestamp(model.updated_at)

            self._flush(session, model.parent_id, model.name)
            return self._to_node(model)

    def reparent(self, node_id: int, new_parent_id: int) -> Node:
        with self.transaction() as session:
            model = self._require(session, node_id)
            model.parent_id = new_parent_id
            model.updated_at = self._next_timestamp(model.updated_at)

            self._flush(session, new_parent_id, model.name)
            return self._to_node(model)

    def delete(self, node_id: int) -> None:
        with self.transaction() as session:
            model = self._require(session, node_id)
            session.delete(model)
            self._flush(session, model.parent_id, model.name)

            self._logger.debug("Deleted node", context={'node_id': node_id})
