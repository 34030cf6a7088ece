"""Core domain models."""

from core.models.todo import Todo, TodoCreate, TodoFilter, TodoUpdate

__all__ = [
    "Todo", "TodoCreate", "TodoFilter", "TodoUpdate",
]
