"""Pydantic schemas for TaskNest API."""

from tasknest.schemas.todo import (
    TodoCreate,
    TodoUpdate,
    TodoResponse,
    TodoListResponse,
    TodoSummaryResponse,
    BulkCompleteRequest,
    BulkDeleteRequest,
    BulkUpdateResponse,
    BulkDeleteResponse,
)
from tasknest.schemas.category import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryUsage,
    CategoryUsageResponse,
    DefaultCategoriesResponse,
)
from tasknest.schemas.user import UserResponse

__all__ = [
    "TodoCreate",
    "TodoUpdate",
    "TodoResponse",
    "TodoListResponse",
    "TodoSummaryResponse",
    "BulkCompleteRequest",
    "BulkDeleteRequest",
    "BulkUpdateResponse",
    "BulkDeleteResponse",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryUsage",
    "CategoryUsageResponse",
    "DefaultCategoriesResponse",
    "UserResponse",
]
