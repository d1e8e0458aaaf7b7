"""Category schemas.

Length and uniqueness rules live in CategoryService so every entry point
reports them the same way; these schemas only fix the argument shapes.
"""

from datetime import datetime

from tasknest.schemas.base import BaseSchema


class CategoryCreate(BaseSchema):
    """Schema for creating a category."""

    name: str
    color: str


class CategoryUpdate(BaseSchema):
    """Schema for updating a category. Omitted fields keep their value."""

    name: str | None = None
    color: str | None = None


class CategoryResponse(BaseSchema):
    """Schema for category responses."""

    id: str
    user_id: str
    name: str
    color: str
    created_at: datetime


class CategoryUsage(BaseSchema):
    """Todo counts for a single category."""

    category_id: str
    name: str
    color: str
    total: int
    completed: int


class CategoryUsageResponse(BaseSchema):
    """Todo counts per category plus the uncategorized bucket."""

    items: list[CategoryUsage]
    uncategorized: int


class DefaultCategoriesResponse(BaseSchema):
    """Categories inserted by the default seeding call (empty if none were needed)."""

    created: list[CategoryResponse]
