"""Todo schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from tasknest.schemas.base import BaseSchema


class TodoCreate(BaseSchema):
    """Schema for creating a todo."""

    title: str
    description: str | None = None
    category_id: str | None = None


class TodoUpdate(BaseSchema):
    """Schema for updating a todo.

    Only fields present in the payload are applied. Sending
    ``category_id: null`` removes the category; omitting it leaves it alone.
    """

    title: str | None = None
    description: str | None = None
    completed: bool | None = None
    category_id: str | None = None


class TodoResponse(BaseSchema):
    """Schema for todo responses."""

    id: str
    user_id: str
    category_id: str | None
    title: str
    description: str | None
    completed: bool
    created_at: datetime
    updated_at: datetime


class TodoSummaryResponse(BaseSchema):
    """Completion counts over all of the caller's todos."""

    total: int
    completed: int
    active: int


class TodoListResponse(BaseSchema):
    """Schema for todo list responses."""

    items: list[TodoResponse]
    total: int
    summary: TodoSummaryResponse


class BulkRequest(BaseSchema):
    """Request naming several todos; repeated ids are kept once, in order."""

    ids: list[str] = Field(..., min_length=1)

    @field_validator("ids")
    @classmethod
    def drop_repeated_ids(cls, ids: list[str]) -> list[str]:
        return list(dict.fromkeys(ids))


class BulkCompleteRequest(BulkRequest):
    """Set the completion flag on several todos at once."""

    completed: bool


class BulkDeleteRequest(BulkRequest):
    """Delete several todos at once."""


class BulkUpdateResponse(BaseSchema):
    updated_count: int


class BulkDeleteResponse(BaseSchema):
    deleted_count: int
