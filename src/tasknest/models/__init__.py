"""SQLAlchemy models for TaskNest."""

from tasknest.models.base import Base
from tasknest.models.user import User
from tasknest.models.category import Category
from tasknest.models.todo import Todo

__all__ = [
    "Base",
    "User",
    "Category",
    "Todo",
]
