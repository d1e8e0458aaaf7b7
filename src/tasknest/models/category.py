"""Category model for tagging todos."""

import uuid
from datetime import datetime

from sqlalchemy import String, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tasknest.models.base import Base, UTCDateTime, utc_now

MAX_CATEGORY_NAME_LENGTH = 100

# Seeded for users who have no categories yet.
DEFAULT_CATEGORIES = [
    ("Work", "#3B82F6"),
    ("Personal", "#10B981"),
    ("Health", "#F59E0B"),
    ("Learning", "#8B5CF6"),
    ("Shopping", "#EF4444"),
    ("Travel", "#06B6D4"),
]


class Category(Base):
    """Named, colored tag owned by a single user."""

    __tablename__ = "categories"

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
    name: Mapped[str] = mapped_column(String(MAX_CATEGORY_NAME_LENGTH), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)  # Hex color like #3B82F6
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_categories_user_name"),
        Index("ix_categories_user_id", "user_id"),
    )

    @classmethod
    def get_defaults(cls, user_id: str) -> list["Category"]:
        """Build the default category set for a user."""
        return [
            cls(user_id=user_id, name=name, color=color)
            for name, color in DEFAULT_CATEGORIES
        ]

    def __repr__(self) -> str:
        return f"<Category(name={self.name!r})>"
