"""User model - the root of ownership for categories and todos."""

import uuid
from datetime import datetime

from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column

from tasknest.models.base import Base, UTCDateTime, utc_now


class User(Base):
    """Internal identity record for an identity-provider subject."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    # One row per subject; a concurrent duplicate insert fails here.
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    name: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utc_now,
    )

    __table_args__ = (Index("ix_users_email", "email"),)

    def __repr__(self) -> str:
        return f"<User(external_id={self.external_id!r})>"
