"""CLI interface for TaskNest."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.config import get_settings
from tasknest.database import get_async_session_maker, init_db
from tasknest.errors import NotFoundError, TaskNestError, ValidationError
from tasknest.identity import CallerContext, CallerIdentity
from tasknest.log import configure_logging
from tasknest.models import Category, Todo
from tasknest.schemas.todo import TodoCreate, TodoUpdate
from tasknest.services.category_service import CategoryService
from tasknest.services.todo_service import TodoService
from tasknest.services.user_service import UserService
from tasknest.services.views import (
    UNCATEGORIZED,
    Selection,
    SortField,
    SortOrder,
    TodoView,
    ViewMode,
    summarize,
)

DEFAULT_CATEGORY_COLOR = "#6B7280"

app = typer.Typer(
    name="tasknest",
    help="TaskNest - todo lists with categories.",
    no_args_is_help=True,
)
console = Console()

# Identity the commands act as; set by the --user option
state: dict[str, str | None] = {"subject": None}


def run_async(coro):
    """Run async function in sync context, reporting known errors."""
    try:
        return asyncio.run(coro)
    except TaskNestError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)


def current_identity() -> CallerIdentity:
    settings = get_settings()
    return CallerIdentity(
        subject=state["subject"] or settings.cli_subject,
        email=settings.cli_email or None,
        name=settings.cli_name,
    )


@asynccontextmanager
async def caller_session() -> AsyncIterator[tuple[AsyncSession, CallerContext]]:
    """Open a session bound to the CLI user and commit it on success."""
    await init_db()
    async with get_async_session_maker()() as session:
        try:
            caller = await UserService(session).resolve_context(current_identity())
            yield session, caller
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def find_category(service: CategoryService, name_or_id: str) -> Category:
    """Find a category by exact id or case-insensitive name."""
    for category in await service.get_all():
        if category.id == name_or_id or category.name.lower() == name_or_id.lower():
            return category
    raise NotFoundError("Category", name_or_id)


async def find_todo(service: TodoService, todo_id: str) -> Todo:
    """Find a todo by full or unambiguous partial ID."""
    matches = [t for t in await service.get_all() if t.id.startswith(todo_id)]
    if not matches:
        raise NotFoundError("Todo", todo_id)
    if len(matches) > 1:
        raise ValidationError(f"ID prefix {todo_id!r} matches {len(matches)} todos", "id")
    return matches[0]


async def select_todos(
    service: TodoService,
    todo_ids: list[str],
    view: TodoView,
) -> Selection:
    """Select the given IDs, or every todo visible in ``view`` if none are given."""
    selection = Selection()
    if todo_ids:
        for todo_id in todo_ids:
            todo = await find_todo(service, todo_id)
            if todo.id not in selection:
                selection.toggle(todo.id)
    else:
        selection.toggle_all(t.id for t in view.apply(await service.get_all()))
    return selection


async def resolve_category_filter(session, caller, category: str | None) -> str | None:
    if not category:
        return None
    if category.lower() == UNCATEGORIZED:
        return UNCATEGORIZED
    found = await find_category(CategoryService(session, caller), category)
    return found.id


@app.callback()
def main(
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="Act as this identity subject (default: TASKNEST_CLI_SUBJECT)"
    ),
):
    """Select the identity every command runs as."""
    configure_logging(level="WARNING", json=False)
    state["subject"] = user


@app.command()
def whoami():
    """Show the user the CLI acts as."""

    async def _whoami():
        async with caller_session() as (session, caller):
            user = await UserService(session).find(current_identity())
            console.print(Panel(
                f"[bold]{current_identity().display_name}[/bold]\n"
                f"[dim]Subject: {user.external_id}[/dim]\n"
                f"[dim]User ID: {caller.user_id}[/dim]",
                title="Current User",
            ))

    run_async(_whoami())


@app.command()
def add(
    title: str = typer.Argument(..., help="Todo title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="Description"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Category name"),
):
    """Add a new todo."""

    async def _add():
        async with caller_session() as (session, caller):
            # Resolve category, creating it if it doesn't exist
            category_id = None
            if category:
                cat_service = CategoryService(session, caller)
                try:
                    category_id = (await find_category(cat_service, category)).id
                except NotFoundError:
                    new_cat = await cat_service.create(category, DEFAULT_CATEGORY_COLOR)
                    category_id = new_cat.id

            todo = await TodoService(session, caller).create(
                TodoCreate(title=title, description=description, category_id=category_id)
            )

            console.print(Panel(
                f"[green]Created:[/green] {todo.title}\n"
                f"[dim]ID: {todo.id}[/dim]",
                title="Todo Added",
            ))

    run_async(_add())


@app.command("list")
def list_todos(
    view: ViewMode = typer.Option(ViewMode.ACTIVE, "--view", "-v", help="Which todos to show"),
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Category name, or 'none' for uncategorized"
    ),
    search: str = typer.Option("", "--search", "-s", help="Match title or description"),
    sort_by: SortField = typer.Option(SortField.CREATED_AT, "--sort", help="Sort field"),
    order: SortOrder = typer.Option(SortOrder.DESC, "--order", help="Sort order"),
):
    """List todos."""

    async def _list():
        async with caller_session() as (session, caller):
            todos = await TodoService(session, caller).get_all()
            categories = {c.id: c for c in await CategoryService(session, caller).get_all()}

            visible = TodoView(
                category_id=await resolve_category_filter(session, caller, category),
                mode=view,
                search=search,
                sort_by=sort_by,
                order=order,
            ).apply(todos)
            summary = summarize(todos)

            if not visible:
                console.print("[dim]No todos found.[/dim]")
                return

            table = Table(
                title=f"Todos ({len(visible)} shown, "
                f"{summary.active} active, {summary.completed} completed)"
            )
            table.add_column("ID", style="dim", width=8)
            table.add_column("Title", style="bold")
            table.add_column("Category", style="cyan")
            table.add_column("Created", width=16)

            for todo in visible:
                title = todo.title
                if todo.completed:
                    title = f"[strike dim]{title}[/strike dim]"
                cat = categories.get(todo.category_id)
                table.add_row(
                    todo.id[:8],
                    title,
                    cat.name if cat else "",
                    todo.created_at.strftime("%Y-%m-%d %H:%M"),
                )

            console.print(table)

    run_async(_list())


def _set_completed(todo_ids: list[str], completed: bool, category: Optional[str], search: str):
    async def _run():
        async with caller_session() as (session, caller):
            service = TodoService(session, caller)
            view = TodoView(
                category_id=await resolve_category_filter(session, caller, category),
                mode=ViewMode.ACTIVE if completed else ViewMode.COMPLETED,
                search=search,
            )
            selection = await select_todos(service, todo_ids, view)
            if not selection:
                console.print("[dim]Nothing to update.[/dim]")
                return
            count = await service.set_completed_many(sorted(selection.ids), completed)
            label = "Completed" if completed else "Reopened"
            console.print(f"[green]{label}:[/green] {count} todo(s)")

    run_async(_run())


@app.command()
def done(
    todo_ids: Optional[list[str]] = typer.Argument(None, help="Todo IDs (or partial IDs)"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Limit to a category"),
    search: str = typer.Option("", "--search", "-s", help="Limit to matching todos"),
):
    """Mark todos as complete (all visible active todos if no IDs are given)."""
    _set_completed(todo_ids or [], True, category, search)


@app.command()
def undo(
    todo_ids: Optional[list[str]] = typer.Argument(None, help="Todo IDs (or partial IDs)"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Limit to a category"),
    search: str = typer.Option("", "--search", "-s", help="Limit to matching todos"),
):
    """Mark todos as not complete (all visible completed todos if no IDs are given)."""
    _set_completed(todo_ids or [], False, category, search)


@app.command()
def edit(
    todo_id: str = typer.Argument(..., help="Todo ID (or partial ID)"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="New description"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Move to category"),
    no_category: bool = typer.Option(False, "--no-category", help="Remove the category"),
):
    """Edit a todo."""

    async def _edit():
        async with caller_session() as (session, caller):
            service = TodoService(session, caller)
            todo = await find_todo(service, todo_id)

            changes: dict = {}
            if title is not None:
                changes["title"] = title
            if description is not None:
                changes["description"] = description
            if no_category:
                changes["category_id"] = None
            elif category:
                changes["category_id"] = (
                    await find_category(CategoryService(session, caller), category)
                ).id

            updated = await service.update(todo.id, TodoUpdate(**changes))
            console.print(f"[green]Updated:[/green] {updated.title}")

    run_async(_edit())


@app.command()
def delete(
    todo_ids: list[str] = typer.Argument(..., help="Todo IDs (or partial IDs)"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete todos."""

    async def _delete():
        async with caller_session() as (session, caller):
            service = TodoService(session, caller)
            selection = await select_todos(service, todo_ids, TodoView())

            if not force:
                confirm = typer.confirm(f"Delete {len(selection)} todo(s)?")
                if not confirm:
                    raise typer.Abort()

            count = await service.delete_many(sorted(selection.ids))
            console.print(f"[red]Deleted:[/red] {count} todo(s)")

    run_async(_delete())


@app.command("clear-completed")
def clear_completed():
    """Delete every completed todo."""

    async def _clear():
        async with caller_session() as (session, caller):
            count = await TodoService(session, caller).delete_completed()
            console.print(f"[red]Deleted:[/red] {count} completed todo(s)")

    run_async(_clear())


@app.command()
def categories():
    """List categories with todo counts."""

    async def _categories():
        async with caller_session() as (session, caller):
            usage, uncategorized = await CategoryService(session, caller).usage()

            if not usage:
                console.print("[dim]No categories found.[/dim]")
                return

            table = Table(title="Categories")
            table.add_column("ID", style="dim", width=8)
            table.add_column("Name", style="bold")
            table.add_column("Color")
            table.add_column("Todos", justify="right")
            table.add_column("Done", justify="right")

            for item in usage:
                table.add_row(
                    item.category_id[:8],
                    item.name,
                    item.color,
                    str(item.total),
                    str(item.completed),
                )

            console.print(table)
            console.print(f"[dim]Uncategorized todos: {uncategorized}[/dim]")

    run_async(_categories())


@app.command("category-add")
def category_add(
    name: str = typer.Argument(..., help="Category name"),
    color: str = typer.Option(DEFAULT_CATEGORY_COLOR, "--color", help="Hex color"),
):
    """Create a category."""

    async def _add():
        async with caller_session() as (session, caller):
            category = await CategoryService(session, caller).create(name, color)
            console.print(f"[green]Created category:[/green] {category.name}")

    run_async(_add())


@app.command("category-delete")
def category_delete(
    name: str = typer.Argument(..., help="Category name or ID"),
):
    """Delete a category that no todo uses."""

    async def _delete():
        async with caller_session() as (session, caller):
            service = CategoryService(session, caller)
            category = await find_category(service, name)
            await service.delete(category.id)
            console.print(f"[red]Deleted category:[/red] {category.name}")

    run_async(_delete())


@app.command("seed-categories")
def seed_categories():
    """Create the default categories if you have none."""

    async def _seed():
        async with caller_session() as (session, caller):
            created = await CategoryService(session, caller).seed_defaults()
            if not created:
                console.print("[dim]You already have categories.[/dim]")
                return
            names = ", ".join(c.name for c in created)
            console.print(f"[green]Created:[/green] {names}")

    run_async(_seed())


@app.command()
def server(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
):
    """Start the API server."""
    import uvicorn

    console.print(f"[green]Starting TaskNest server at http://{host}:{port}[/green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    uvicorn.run(
        "tasknest.main:app",
        host=host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    app()
