"""
Node Table

SQLAlchemy mapping for the ``filesystem_nodes`` table. One row per
node, keyed by ``id``; the tree is an adjacency list through
``parent_id``. ``(parent_id, name)`` is unique, at most one row may
have no parent, and ``owner_id`` is indexed for home-directory lookups.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class NodeModel(Base):
    __tablename__ = "filesystem_nodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    # NULL only for the root.
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("filesystem_nodes.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    # NULL only for directories.
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    permissions: Mapped[str] = mapped_column(String(9), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("parent_id", "name", name="uq_filesystem_nodes_parent_name"),
    )

    def __repr__(self) -> str:
        return f"<NodeModel {self.name!r} ({self.id}) parent={self.parent_id}>"


# NULL parents are distinct under the constraint above. Every parentless
# row maps to the same key here, so the table holds at most one root.
_parent = NodeModel.__table__.c.parent_id
Index(
    "uq_filesystem_nodes_root",
    func.coalesce(_parent, 0),
    unique=True,
    sqlite_where=_parent.is_(None),
    postgresql_where=_parent.is_(None),
)
