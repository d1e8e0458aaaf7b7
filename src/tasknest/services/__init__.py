"""Business logic services for TaskNest."""

from tasknest.services.user_service import UserService
from tasknest.services.category_service import CategoryService
from tasknest.services.todo_service import TodoService

__all__ = ["UserService", "CategoryService", "TodoService"]
