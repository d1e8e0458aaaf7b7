"""Business logic for todo operations."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.errors import AuthorizationError, NotFoundError, ValidationError, guard
from tasknest.identity import CallerContext
from tasknest.models import Todo
from tasknest.models.base import utc_now
from tasknest.models.todo import MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH
from tasknest.schemas.todo import TodoCreate, TodoUpdate
from tasknest.services.category_service import CategoryService

logger = structlog.get_logger()


def validate_title(title: str | None) -> str:
    """Return the trimmed title or raise ValidationError."""
    trimmed = (title or "").strip()
    if not trimmed:
        raise ValidationError("Title is required", "title")
    if len(trimmed) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be {MAX_TITLE_LENGTH} characters or less", "title")
    return trimmed


def validate_description(description: str | None) -> str | None:
    """Return the trimmed description (None if blank) or raise ValidationError."""
    if description is None:
        return None
    trimmed = description.strip()
    if len(trimmed) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less",
            "description",
        )
    return trimmed or None


class TodoService:
    """Service for todo CRUD and bulk operations scoped to one caller."""

    def __init__(self, db: AsyncSession, caller: CallerContext):
        self.db = db
        self.caller = caller
        self.categories = CategoryService(db, caller)

    async def _get_owned(self, todo_id: str) -> Todo:
        todo = await self.db.get(Todo, todo_id)
        if todo is None:
            raise NotFoundError("Todo", todo_id)
        if todo.user_id != self.caller.user_id:
            raise AuthorizationError("You don't have permission to access this todo")
        return todo

    async def _get_all_owned(self, todo_ids: list[str]) -> list[Todo]:
        # Every id is checked before the caller mutates any of them.
        unique_ids = list(dict.fromkeys(todo_ids))
        return [await self._get_owned(todo_id) for todo_id in unique_ids]

    @guard("Failed to fetch todos")
    async def get_all(self) -> list[Todo]:
        """Get all todos owned by the caller."""
        result = await self.db.execute(
            select(Todo)
            .where(Todo.user_id == self.caller.user_id)
            .order_by(Todo.created_at)
        )
        return list(result.scalars())

    @guard("Failed to fetch todos by category")
    async def get_by_category(self, category_id: str | None = None) -> list[Todo]:
        """Get the caller's todos in one category, or the uncategorized ones."""
        query = select(Todo).where(Todo.user_id == self.caller.user_id)
        if category_id:
            await self.categories.get_by_id(category_id)
            query = query.where(Todo.category_id == category_id)
        else:
            query = query.where(Todo.category_id.is_(None))

        result = await self.db.execute(query.order_by(Todo.created_at))
        return list(result.scalars())

    @guard("Failed to fetch todo")
    async def get_by_id(self, todo_id: str) -> Todo:
        """Get a single todo by ID."""
        return await self._get_owned(todo_id)

    @guard("Failed to create todo")
    async def create(self, data: TodoCreate) -> Todo:
        """Create a new todo."""
        title = validate_title(data.title)
        description = validate_description(data.description)
        if data.category_id:
            await self.categories.get_by_id(data.category_id)

        now = utc_now()
        todo = Todo(
            user_id=self.caller.user_id,
            category_id=data.category_id or None,
            title=title,
            description=description,
            completed=False,
            created_at=now,
            updated_at=now,
        )
        self.db.add(todo)
        await self.db.flush()
        logger.info("todo_created", todo_id=todo.id, user_id=self.caller.user_id)
        return todo

    @guard("Failed to update todo")
    async def update(self, todo_id: str, data: TodoUpdate) -> Todo:
        """Update a todo; only fields present in ``data`` are changed."""
        todo = await self._get_owned(todo_id)
        update_data = data.model_dump(exclude_unset=True)

        # Validate everything before touching the row
        title = update_data.get("title")
        if title is not None:
            title = validate_title(title)
        if "description" in update_data:
            update_data["description"] = validate_description(update_data["description"])
        category_id = update_data.get("category_id")
        if category_id:
            await self.categories.get_by_id(category_id)

        if title is not None:
            todo.title = title
        if "description" in update_data:
            todo.description = update_data["description"]
        if update_data.get("completed") is not None:
            todo.completed = update_data["completed"]
        if "category_id" in update_data:
            todo.category_id = category_id or None

        todo.touch()
        await self.db.flush()
        return todo

    @guard("Failed to delete todo")
    async def delete(self, todo_id: str) -> None:
        """Delete a todo."""
        todo = await self._get_owned(todo_id)
        await self.db.delete(todo)
        await self.db.flush()
        logger.info("todo_deleted", todo_id=todo_id, user_id=self.caller.user_id)

    @guard("Failed to update todos")
    async def set_completed_many(self, todo_ids: list[str], completed: bool) -> int:
        """Set the completion flag on several todos; returns how many were updated."""
        todos = await self._get_all_owned(todo_ids)

        now = utc_now()
        for todo in todos:
            todo.set_completed(completed, now)
        await self.db.flush()
        logger.info(
            "todos_completion_set",
            user_id=self.caller.user_id,
            count=len(todos),
            completed=completed,
        )
        return len(todos)

    @guard("Failed to delete todos")
    async def delete_many(self, todo_ids: list[str]) -> int:
        """Delete several todos; returns how many were deleted."""
        todos = await self._get_all_owned(todo_ids)

        for todo in todos:
            await self.db.delete(todo)
        await self.db.flush()
        logger.info("todos_deleted", user_id=self.caller.user_id, count=len(todos))
        return len(todos)

    @guard("Failed to delete completed todos")
    async def delete_completed(self) -> int:
        """Delete every completed todo owned by the caller; returns the count."""
        result = await self.db.execute(
            select(Todo).where(
                Todo.user_id == self.caller.user_id,
                Todo.completed.is_(True),
            )
        )
        completed = list(result.scalars())
        if not completed:
            return 0

        for todo in completed:
            await self.db.delete(todo)
        await self.db.flush()
        logger.info("completed_todos_deleted", user_id=self.caller.user_id, count=len(completed))
        return len(completed)
