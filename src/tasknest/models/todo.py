"""Todo model - the core entity of TaskNest."""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from tasknest.models.base import Base, UTCDateTime, utc_now

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000


class Todo(Base):
    """Task item owned by a user, optionally tagged with one of their categories."""

    __tablename__ = "todos"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
    )
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
    )

    __table_args__ = (
        Index("ix_todos_user_id", "user_id"),
        Index("ix_todos_user_completed", "user_id", "completed"),
        Index("ix_todos_category_id", "category_id"),
        Index("ix_todos_user_category", "user_id", "category_id"),
    )

    def set_completed(self, completed: bool, at: datetime | None = None) -> None:
        """Set the completion flag and refresh the update timestamp."""
        self.completed = completed
        self.touch(at)

    def touch(self, at: datetime | None = None) -> None:
        self.updated_at = at or utc_now()

    def __repr__(self) -> str:
        status = "done" if self.completed else "pending"
        return f"<Todo(title={self.title!r}, status={status})>"
