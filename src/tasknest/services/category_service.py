"""Business logic for category operations."""

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    guard,
)
from tasknest.identity import CallerContext
from tasknest.models import Category, Todo
from tasknest.models.category import MAX_CATEGORY_NAME_LENGTH
from tasknest.schemas.category import CategoryUsage

logger = structlog.get_logger()


def validate_category_name(name: str | None) -> str:
    """Return the trimmed name or raise ValidationError."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Category name is required", "name")
    if len(trimmed) > MAX_CATEGORY_NAME_LENGTH:
        raise ValidationError(
            f"Category name must be {MAX_CATEGORY_NAME_LENGTH} characters or less",
            "name",
        )
    return trimmed


class CategoryService:
    """Service for category operations scoped to one caller."""

    def __init__(self, db: AsyncSession, caller: CallerContext):
        self.db = db
        self.caller = caller

    async def _get_owned(self, category_id: str) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        if category.user_id != self.caller.user_id:
            raise AuthorizationError("You don't have permission to use this category")
        return category

    async def _ensure_unique_name(self, name: str, exclude_id: str | None = None) -> None:
        query = select(Category.id).where(
            Category.user_id == self.caller.user_id,
            Category.name == name,
        )
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        if result.first() is not None:
            raise ConflictError("Category with this name already exists")

    async def _flush_named(self) -> None:
        """Flush a new or renamed category.

        A concurrent request can claim the same name between the uniqueness
        check and this flush; the constraint then fails and the session must
        be rolled back before it can be used again.
        """
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.info("category_name_conflict", user_id=self.caller.user_id)
            raise ConflictError("Category with this name already exists") from exc

    @guard("Failed to fetch categories")
    async def get_all(self) -> list[Category]:
        """Get all categories owned by the caller."""
        result = await self.db.execute(
            select(Category)
            .where(Category.user_id == self.caller.user_id)
            .order_by(Category.created_at, Category.name)
        )
        return list(result.scalars())

    @guard("Failed to fetch category")
    async def get_by_id(self, category_id: str) -> Category:
        """Get a category by ID."""
        return await self._get_owned(category_id)

    @guard("Failed to create category")
    async def create(self, name: str, color: str) -> Category:
        """Create a new category."""
        trimmed = validate_category_name(name)
        await self._ensure_unique_name(trimmed)

        category = Category(user_id=self.caller.user_id, name=trimmed, color=color)
        self.db.add(category)
        await self._flush_named()
        logger.info("category_created", category_id=category.id, user_id=self.caller.user_id)
        return category

    @guard("Failed to update category")
    async def update(
        self,
        category_id: str,
        name: str | None = None,
        color: str | None = None,
    ) -> Category:
        """Update a category. Arguments left as None are not changed."""
        category = await self._get_owned(category_id)

        if name is not None:
            trimmed = validate_category_name(name)
            await self._ensure_unique_name(trimmed, exclude_id=category.id)
            category.name = trimmed
        if color is not None:
            category.color = color

        await self._flush_named()
        return category

    @guard("Failed to delete category")
    async def delete(self, category_id: str) -> None:
        """Delete a category that no todo references."""
        category = await self._get_owned(category_id)

        in_use = await self.db.execute(
            select(Todo.id).where(Todo.category_id == category.id).limit(1)
        )
        if in_use.first() is not None:
            raise ConflictError("Cannot delete category that is being used by todos")

        await self.db.delete(category)
        await self.db.flush()
        logger.info("category_deleted", category_id=category_id, user_id=self.caller.user_id)

    @guard("Failed to create default categories")
    async def seed_defaults(self) -> list[Category]:
        """Seed default categories if the caller has none.

        Returns the inserted categories, or an empty list when the caller
        already owns at least one category.
        """
        existing = await self.db.execute(
            select(Category.id).where(Category.user_id == self.caller.user_id).limit(1)
        )
        if existing.first() is not None:
            return []

        defaults = Category.get_defaults(self.caller.user_id)
        self.db.add_all(defaults)
        await self.db.flush()
        logger.info("default_categories_created", user_id=self.caller.user_id, count=len(defaults))
        return defaults

    @guard("Failed to count category usage")
    async def usage(self) -> tuple[list[CategoryUsage], int]:
        """Count total and completed todos per category.

        Returns the per-category counts (every category, including unused
        ones) and the number of todos with no category.
        """
        result = await self.db.execute(
            select(
                Todo.category_id,
                func.count(Todo.id),
                func.sum(case((Todo.completed.is_(True), 1), else_=0)),
            )
            .where(Todo.user_id == self.caller.user_id)
            .group_by(Todo.category_id)
        )
        counts = {row[0]: (row[1], row[2] or 0) for row in result.all()}

        items = []
        for category in await self.get_all():
            total, completed = counts.get(category.id, (0, 0))
            items.append(
                CategoryUsage(
                    category_id=category.id,
                    name=category.name,
                    color=category.color,
                    total=total,
                    completed=completed,
                )
            )
        uncategorized = counts.get(None, (0, 0))[0]
        return items, uncategorized
