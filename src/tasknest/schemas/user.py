"""User schemas."""

from datetime import datetime

from tasknest.schemas.base import BaseSchema


class UserResponse(BaseSchema):
    """Schema for the resolved caller."""

    id: str
    external_id: str
    email: str
    name: str | None
    created_at: datetime
