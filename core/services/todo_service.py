"""
Todo service for CRUD operations.

Handles todo lifecycle: create, read, list, update, delete.
Every operation is scoped to the principal in the RequestScope. Updates and
deletes lock the row, re-check ownership and write inside one transaction,
so concurrent writers to the same todo are serialized and a failed request
leaves nothing behind.
"""

import logging
from uuid import UUID, uuid4

from api.errors import id_not_found, permission_denied
from clients.postgres_client import PostgresClient
from core.models import Todo, TodoCreate, TodoFilter, TodoUpdate
from utils.request_scope import RequestScope, scope_logger
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_TODO_COLUMNS = (
    "id, user_id, subject, description, priority, due_date, completed, created_at, updated_at"
)


class TodoService:
    """Service for todo operations."""

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def create(self, scope: RequestScope, data: TodoCreate) -> Todo:
        """
        Create a new todo owned by the scope's principal.

        Args:
            scope: Authenticated request scope
            data: Todo creation data

        Returns:
            Created todo
        """
        now = now_utc()

        row = self.postgres.execute_single(
            f"""
            INSERT INTO todos (
                id, user_id, subject, description, priority,
                due_date, completed, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {_TODO_COLUMNS}
            """,
            (
                uuid4(), scope.principal_id, data.subject, data.description, data.priority,
                data.due_date, data.completed, now, now,
            ),
            timeout=scope.remaining(),
        )

        todo = Todo.model_validate(row)
        scope_logger(logger, scope).info(f"Todo created: {todo.id}")
        return todo

    def get(self, scope: RequestScope, todo_id: UUID) -> Todo:
        """
        Get a todo by ID.

        Raises:
            APIError: Not found, or permission denied if another user owns it.
        """
        row = self.postgres.execute_single(
            f"SELECT {_TODO_COLUMNS} FROM todos WHERE id = %s",
            (todo_id,),
            timeout=scope.remaining(),
        )
        if row is None:
            raise id_not_found(todo_id)

        todo = Todo.model_validate(row)
        if todo.user_id != scope.principal_id:
            raise permission_denied()
        return todo

    def list_all(self, scope: RequestScope, filters: TodoFilter) -> list[Todo]:
        """
        List the principal's todos.

        Args:
            scope: Authenticated request scope
            filters: Optional field filters plus offset/limit (0 = unbounded)

        Returns:
            Matching todos, newest first
        """
        where = ["user_id = %s"]
        params: list = [scope.principal_id]

        if filters.id.defined:
            where.append("id = %s")
            params.append(filters.id.value)
        if filters.priority.defined:
            where.append("priority = %s")
            params.append(filters.priority.value)
        if filters.due_date.defined:
            if filters.due_date.value is None:
                where.append("due_date IS NULL")
            else:
                where.append("(due_date AT TIME ZONE 'UTC')::date = (%s AT TIME ZONE 'UTC')::date")
                params.append(filters.due_date.value)
        if filters.completed.defined:
            where.append("completed = %s")
            params.append(filters.completed.value)

        pagination = ""
        if filters.limit > 0:
            pagination += " LIMIT %s"
            params.append(filters.limit)
        if filters.offset > 0:
            pagination += " OFFSET %s"
            params.append(filters.offset)

        rows = self.postgres.execute(
            f"""
            SELECT {_TODO_COLUMNS} FROM todos
            WHERE {' AND '.join(where)}
            ORDER BY created_at DESC, id
            {pagination}
            """,
            tuple(params),
            timeout=scope.remaining(),
        )

        return [Todo.model_validate(row) for row in rows]

    def update(self, scope: RequestScope, todo_id: UUID, patch: TodoUpdate) -> Todo:
        """
        Apply a partial update.

        Only fields present in the patch change; `updated_at` is bumped on
        every successful call, including one with an empty patch.

        Raises:
            APIError: Not found, or permission denied if another user owns it.
        """
        with self.postgres.transaction(timeout=scope.remaining()) as cur:
            todo = self._get_for_update(cur, todo_id)
            if todo.user_id != scope.principal_id:
                raise permission_denied()

            todo.subject = patch.subject.value_or(todo.subject)
            todo.description = patch.description.value_or(todo.description)
            todo.priority = patch.priority.value_or(todo.priority)
            todo.due_date = patch.due_date.value_or(todo.due_date)
            todo.completed = patch.completed.value_or(todo.completed)
            todo.updated_at = now_utc()

            cur.execute(
                """
                UPDATE todos
                SET subject = %s, description = %s, priority = %s,
                    due_date = %s, completed = %s, updated_at = %s
                WHERE id = %s
                """,
                (
                    todo.subject, todo.description, todo.priority,
                    todo.due_date, todo.completed, todo.updated_at, todo_id,
                ),
            )
            if cur.rowcount == 0:
                raise id_not_found(todo_id)

        scope_logger(logger, scope).info(
            f"Todo updated: {todo_id} fields={sorted(patch.defined_fields())}"
        )
        return todo

    def delete(self, scope: RequestScope, todo_id: UUID) -> None:
        """
        Delete a todo.

        Raises:
            APIError: Not found, or permission denied if another user owns it.
        """
        with self.postgres.transaction(timeout=scope.remaining()) as cur:
            todo = self._get_for_update(cur, todo_id)
            if todo.user_id != scope.principal_id:
                raise permission_denied()

            cur.execute("DELETE FROM todos WHERE id = %s", (todo_id,))
            if cur.rowcount == 0:
                raise id_not_found(todo_id)

        scope_logger(logger, scope).info(f"Todo deleted: {todo_id}")

    def _get_for_update(self, cur, todo_id: UUID) -> Todo:
        """Read a todo and hold its row lock until the transaction ends."""
        # FOR UPDATE blocks other writers and lockers of this row until
        # the current transaction commits or rolls back
        cur.execute(
            f"SELECT {_TODO_COLUMNS} FROM todos WHERE id = %s FOR UPDATE",
            (todo_id,),
        )
        row = cur.fetchone()
        if row is None:
            raise id_not_found(todo_id)
        return Todo.model_validate(row)
