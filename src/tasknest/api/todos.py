"""Todo API endpoints."""

from fastapi import APIRouter, Request, status

from tasknest.api.auth import CurrentCaller, DbSession
from tasknest.api.events import commit_and_publish
from tasknest.api.limits import bulk_rate_limit, default_rate_limit, limiter
from tasknest.schemas.todo import (
    BulkCompleteRequest,
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkUpdateResponse,
    TodoCreate,
    TodoListResponse,
    TodoResponse,
    TodoSummaryResponse,
    TodoUpdate,
)
from tasknest.services.todo_service import TodoService
from tasknest.services.views import SortField, SortOrder, TodoView, ViewMode, summarize

router = APIRouter(prefix="/todos", tags=["todos"])


@router.get("", response_model=TodoListResponse)
async def list_todos(
    caller: CurrentCaller,
    db: DbSession,
    category_id: str | None = None,
    view: ViewMode = ViewMode.ALL,
    q: str = "",
    sort_by: SortField = SortField.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
):
    """List the caller's todos.

    ``category_id`` may be a category id or ``none`` for uncategorized todos.
    The summary always counts the whole list, not just the visible items.
    """
    service = TodoService(db, caller)
    todos = await service.get_all()
    visible = TodoView(
        category_id=category_id,
        mode=view,
        search=q,
        sort_by=sort_by,
        order=order,
    ).apply(todos)
    summary = summarize(todos)
    return TodoListResponse(
        items=[TodoResponse.model_validate(t) for t in visible],
        total=len(visible),
        summary=TodoSummaryResponse(
            total=summary.total,
            completed=summary.completed,
            active=summary.active,
        ),
    )


@router.get("/by-category", response_model=list[TodoResponse])
async def list_todos_by_category(
    caller: CurrentCaller,
    db: DbSession,
    category_id: str | None = None,
):
    """List todos in a category, or those without one if no id is given."""
    service = TodoService(db, caller)
    todos = await service.get_by_category(category_id)
    return [TodoResponse.model_validate(t) for t in todos]


@router.post("", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(default_rate_limit)
async def create_todo(
    request: Request,
    data: TodoCreate,
    caller: CurrentCaller,
    db: DbSession,
):
    """Create a new todo."""
    service = TodoService(db, caller)
    todo = await service.create(data)
    await commit_and_publish(db, caller, "todos", "created", [todo.id])
    return TodoResponse.model_validate(todo)


@router.post("/bulk/complete", response_model=BulkUpdateResponse)
@limiter.limit(bulk_rate_limit)
async def bulk_complete_todos(
    request: Request,
    data: BulkCompleteRequest,
    caller: CurrentCaller,
    db: DbSession,
):
    """Mark several todos complete or incomplete.

    Ownership of every id is checked first; one bad id rejects the batch.
    """
    service = TodoService(db, caller)
    count = await service.set_completed_many(data.ids, data.completed)
    await commit_and_publish(db, caller, "todos", "updated", data.ids)
    return BulkUpdateResponse(updated_count=count)


@router.post("/bulk/delete", response_model=BulkDeleteResponse)
@limiter.limit(bulk_rate_limit)
async def bulk_delete_todos(
    request: Request,
    data: BulkDeleteRequest,
    caller: CurrentCaller,
    db: DbSession,
):
    """Delete several todos after checking ownership of all of them."""
    service = TodoService(db, caller)
    count = await service.delete_many(data.ids)
    await commit_and_publish(db, caller, "todos", "deleted", data.ids)
    return BulkDeleteResponse(deleted_count=count)


@router.delete("/completed", response_model=BulkDeleteResponse)
@limiter.limit(bulk_rate_limit)
async def delete_completed_todos(
    request: Request,
    caller: CurrentCaller,
    db: DbSession,
):
    """Delete all of the caller's completed todos."""
    service = TodoService(db, caller)
    count = await service.delete_completed()
    if count:
        await commit_and_publish(db, caller, "todos", "deleted")
    return BulkDeleteResponse(deleted_count=count)


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: str,
    caller: CurrentCaller,
    db: DbSession,
):
    """Get a single todo by ID."""
    service = TodoService(db, caller)
    todo = await service.get_by_id(todo_id)
    return TodoResponse.model_validate(todo)


async def _update_todo_impl(
    todo_id: str,
    data: TodoUpdate,
    caller: CurrentCaller,
    db: DbSession,
) -> TodoResponse:
    """Shared implementation for PUT and PATCH todo updates."""
    service = TodoService(db, caller)
    todo = await service.update(todo_id, data)
    await commit_and_publish(db, caller, "todos", "updated", [todo.id])
    return TodoResponse.model_validate(todo)


@router.put("/{todo_id}", response_model=TodoResponse)
@limiter.limit(default_rate_limit)
async def update_todo(
    request: Request,
    todo_id: str,
    data: TodoUpdate,
    caller: CurrentCaller,
    db: DbSession,
):
    """Update a todo (only fields present in the body are modified)."""
    return await _update_todo_impl(todo_id, data, caller, db)


@router.patch("/{todo_id}", response_model=TodoResponse)
@limiter.limit(default_rate_limit)
async def patch_todo(
    request: Request,
    todo_id: str,
    data: TodoUpdate,
    caller: CurrentCaller,
    db: DbSession,
):
    """Partially update a todo (only specified fields are modified)."""
    return await _update_todo_impl(todo_id, data, caller, db)


@router.delete("/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(default_rate_limit)
async def delete_todo(
    request: Request,
    todo_id: str,
    caller: CurrentCaller,
    db: DbSession,
):
    """Delete a todo."""
    service = TodoService(db, caller)
    await service.delete(todo_id)
    await commit_and_publish(db, caller, "todos", "deleted", [todo_id])
