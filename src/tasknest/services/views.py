"""Filtering, sorting and selection over a caller's todo list.

These helpers never touch the database; they shape the list a store
operation already returned.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from tasknest.models import Todo

# Category filter value that selects todos without a category
UNCATEGORIZED = "none"


class ViewMode(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class SortField(str, Enum):
    CREATED_AT = "created_at"
    TITLE = "title"
    COMPLETED = "completed"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class TodoView:
    """Filter and sort settings for a todo list."""

    category_id: str | None = None
    mode: ViewMode = ViewMode.ALL
    search: str = ""
    sort_by: SortField = SortField.CREATED_AT
    order: SortOrder = SortOrder.DESC

    def matches(self, todo: Todo) -> bool:
        if self.category_id == UNCATEGORIZED:
            if todo.category_id:
                return False
        elif self.category_id and todo.category_id != self.category_id:
            return False

        if self.mode is ViewMode.ACTIVE and todo.completed:
            return False
        if self.mode is ViewMode.COMPLETED and not todo.completed:
            return False

        query = self.search.strip().lower()
        if query:
            in_title = query in todo.title.lower()
            in_description = query in (todo.description or "").lower()
            if not in_title and not in_description:
                return False
        return True

    def _sort_key(self, todo: Todo) -> str | bool | datetime:
        if self.sort_by is SortField.TITLE:
            return todo.title.casefold()
        if self.sort_by is SortField.COMPLETED:
            return todo.completed
        return todo.created_at

    def apply(self, todos: Iterable[Todo]) -> list[Todo]:
        """Return the matching todos in display order."""
        visible = [todo for todo in todos if self.matches(todo)]
        return sorted(
            visible,
            key=self._sort_key,
            reverse=self.order is SortOrder.DESC,
        )


@dataclass(frozen=True)
class TodoSummary:
    total: int
    completed: int

    @property
    def active(self) -> int:
        return self.total - self.completed


def summarize(todos: Sequence[Todo]) -> TodoSummary:
    """Count total and completed todos."""
    return TodoSummary(
        total=len(todos),
        completed=sum(1 for todo in todos if todo.completed),
    )


@dataclass
class Selection:
    """Set of todo ids picked for a bulk action."""

    ids: set[str] = field(default_factory=set)

    def toggle(self, todo_id: str) -> None:
        if todo_id in self.ids:
            self.ids.discard(todo_id)
        else:
            self.ids.add(todo_id)

    def toggle_all(self, visible_ids: Iterable[str]) -> None:
        """Select every visible id, or clear the selection if all are selected."""
        visible = set(visible_ids)
        if visible and self.ids == visible:
            self.ids.clear()
        else:
            self.ids = visible

    def clear(self) -> None:
        self.ids.clear()

    def __contains__(self, todo_id: object) -> bool:
        return todo_id in self.ids

    def __len__(self) -> int:
        return len(self.ids)
