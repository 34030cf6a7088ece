"""Tests for TodoService with a mocked PostgresClient."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock
from uuid import uuid4

import pytest

from api.errors import APIError, ErrorClass
from clients.postgres_client import PostgresClient
from core.models import TodoCreate, TodoFilter, TodoUpdate
from core.services.todo_service import TodoService
from utils.request_scope import authenticated_scope

CREATED = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _row(todo_id, user_id, **overrides) -> dict:
    row = {
        "id": todo_id,
        "user_id": user_id,
        "subject": "Buy milk",
        "description": "2 litres",
        "priority": 1,
        "due_date": CREATED + timedelta(days=1),
        "completed": False,
        "created_at": CREATED,
        "updated_at": CREATED,
    }
    row.update(overrides)
    return row


@pytest.fixture
def cursor():
    cur = Mock()
    cur.rowcount = 1
    return cur


@pytest.fixture
def mock_postgres(cursor):
    postgres = Mock(spec=PostgresClient)
    transaction = MagicMock()
    transaction.__enter__.return_value = cursor
    transaction.__exit__.return_value = False
    postgres.transaction.return_value = transaction
    return postgres


@pytest.fixture
def service(mock_postgres):
    return TodoService(mock_postgres)


@pytest.fixture
def todo_id():
    return uuid4()


def _executed_sql(cursor) -> list[str]:
    return [" ".join(c.args[0].split()) for c in cursor.execute.call_args_list]


class TestCreate:

    def test_inserts_for_principal(self, service, mock_postgres, scope):
        mock_postgres.execute_single.side_effect = lambda sql, params, timeout=None: _row(
            params[0], params[1], subject=params[2], description=params[3],
            priority=params[4], due_date=params[5], completed=params[6],
        )

        todo = service.create(scope, TodoCreate(subject="Write tests", priority=3))

        assert todo.user_id == scope.principal_id
        assert todo.subject == "Write tests"
        assert todo.priority == 3
        assert todo.due_date is None
        assert todo.description == ""


class TestGet:

    def test_returns_own_todo(self, service, mock_postgres, scope, todo_id):
        mock_postgres.execute_single.return_value = _row(todo_id, scope.principal_id)

        assert service.get(scope, todo_id).id == todo_id

    def test_not_found(self, service, mock_postgres, scope, todo_id):
        mock_postgres.execute_single.return_value = None

        with pytest.raises(APIError) as exc_info:
            service.get(scope, todo_id)

        assert exc_info.value.error_class is ErrorClass.NOT_FOUND
        assert exc_info.value.message == f"ID '{todo_id}' not found."

    def test_other_users_todo_forbidden(self, service, mock_postgres, scope, todo_id):
        mock_postgres.execute_single.return_value = _row(todo_id, uuid4())

        with pytest.raises(APIError) as exc_info:
            service.get(scope, todo_id)

        assert exc_info.value.error_class is ErrorClass.FORBIDDEN


class TestListAll:

    def test_scoped_to_principal(self, service, mock_postgres, scope):
        mock_postgres.execute.return_value = []

        assert service.list_all(scope, TodoFilter()) == []

        sql, params = mock_postgres.execute.call_args.args
        assert "user_id = %s" in sql
        assert "LIMIT" not in sql and "OFFSET" not in sql
        assert params == (scope.principal_id,)

    def test_filters_and_pagination(self, service, mock_postgres, scope):
        mock_postgres.execute.return_value = []
        filters = TodoFilter.model_validate({"priority": "2", "completed": "false", "limit": "5", "offset": "10"})

        service.list_all(scope, filters)

        sql, params = mock_postgres.execute.call_args.args
        assert "priority = %s" in sql
        assert "completed = %s" in sql
        assert "LIMIT %s" in sql and "OFFSET %s" in sql
        assert params == (scope.principal_id, 2, False, 5, 10)

    def test_null_due_date_filter(self, service, mock_postgres, scope):
        mock_postgres.execute.return_value = []

        service.list_all(scope, TodoFilter.model_validate({"due_date": None}))

        sql, params = mock_postgres.execute.call_args.args
        assert "due_date IS NULL" in sql
        assert params == (scope.principal_id,)

    def test_rows_become_models(self, service, mock_postgres, scope):
        mock_postgres.execute.return_value = [
            _row(uuid4(), scope.principal_id),
            _row(uuid4(), scope.principal_id),
        ]

        todos = service.list_all(scope, TodoFilter())

        assert len(todos) == 2
        assert all(t.user_id == scope.principal_id for t in todos)


class TestUpdate:

    def test_merges_only_present_fields(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, scope.principal_id)
        patch = TodoUpdate.model_validate({"subject": "Buy oat milk"})

        todo = service.update(scope, todo_id, patch)

        assert todo.subject == "Buy oat milk"
        assert todo.description == "2 litres"
        assert todo.priority == 1
        assert todo.due_date == CREATED + timedelta(days=1)

    def test_null_clears_due_date(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, scope.principal_id)

        todo = service.update(scope, todo_id, TodoUpdate.model_validate({"due_date": None}))

        assert todo.due_date is None
        update_params = cursor.execute.call_args_list[-1].args[1]
        assert update_params[3] is None

    def test_empty_patch_bumps_updated_at(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, scope.principal_id)

        todo = service.update(scope, todo_id, TodoUpdate())

        assert todo.subject == "Buy milk"
        assert todo.updated_at > CREATED
        assert any(sql.startswith("UPDATE todos") for sql in _executed_sql(cursor))

    def test_locks_row_before_writing(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, scope.principal_id)

        service.update(scope, todo_id, TodoUpdate())

        statements = _executed_sql(cursor)
        assert statements[0].endswith("FOR UPDATE")
        assert statements[1].startswith("UPDATE todos")

    def test_not_found(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = None

        with pytest.raises(APIError) as exc_info:
            service.update(scope, todo_id, TodoUpdate())

        assert exc_info.value.error_class is ErrorClass.NOT_FOUND
        assert len(_executed_sql(cursor)) == 1

    def test_other_users_todo_forbidden_and_untouched(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, uuid4())

        with pytest.raises(APIError) as exc_info:
            service.update(scope, todo_id, TodoUpdate.model_validate({"subject": "Mine now"}))

        assert exc_info.value.error_class is ErrorClass.FORBIDDEN
        assert not any(sql.startswith("UPDATE") for sql in _executed_sql(cursor))

    def test_zero_rows_affected_is_not_found(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, scope.principal_id)
        cursor.rowcount = 0

        with pytest.raises(APIError) as exc_info:
            service.update(scope, todo_id, TodoUpdate())

        assert exc_info.value.error_class is ErrorClass.NOT_FOUND

    def test_transaction_bounded_by_deadline(self, service, mock_postgres, cursor, todo_id):
        scope = authenticated_scope(uuid4(), timeout_seconds=5)
        cursor.fetchone.return_value = _row(todo_id, scope.principal_id)

        service.update(scope, todo_id, TodoUpdate())

        timeout = mock_postgres.transaction.call_args.kwargs["timeout"]
        assert 0 < timeout <= 5


class TestDelete:

    def test_deletes_own_todo(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, scope.principal_id)

        service.delete(scope, todo_id)

        assert _executed_sql(cursor)[-1] == "DELETE FROM todos WHERE id = %s"

    def test_not_found(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = None

        with pytest.raises(APIError) as exc_info:
            service.delete(scope, todo_id)

        assert exc_info.value.error_class is ErrorClass.NOT_FOUND

    def test_other_users_todo_forbidden(self, service, cursor, scope, todo_id):
        cursor.fetchone.return_value = _row(todo_id, uuid4())

        with pytest.raises(APIError) as exc_info:
            service.delete(scope, todo_id)

        assert exc_info.value.error_class is ErrorClass.FORBIDDEN
        assert not any(sql.startswith("DELETE") for sql in _executed_sql(cursor))


class TestDeadline:
    """Every statement carries the time left on the request."""

    @pytest.fixture
    def bounded_scope(self):
        return authenticated_scope(uuid4(), timeout_seconds=5)

    def test_create_bounded(self, service, mock_postgres, bounded_scope):
        mock_postgres.execute_single.return_value = _row(uuid4(), bounded_scope.principal_id)

        service.create(bounded_scope, TodoCreate(subject="x"))

        assert 0 < mock_postgres.execute_single.call_args.kwargs["timeout"] <= 5

    def test_get_bounded(self, service, mock_postgres, bounded_scope, todo_id):
        mock_postgres.execute_single.return_value = _row(todo_id, bounded_scope.principal_id)

        service.get(bounded_scope, todo_id)

        assert 0 < mock_postgres.execute_single.call_args.kwargs["timeout"] <= 5

    def test_list_bounded(self, service, mock_postgres, bounded_scope):
        mock_postgres.execute.return_value = []

        service.list_all(bounded_scope, TodoFilter())

        assert 0 < mock_postgres.execute.call_args.kwargs["timeout"] <= 5

    def test_expired_scope_passes_non_positive_timeout(self, service, mock_postgres):
        scope = authenticated_scope(uuid4(), timeout_seconds=-1)
        mock_postgres.execute.return_value = []

        service.list_all(scope, TodoFilter())

        assert mock_postgres.execute.call_args.kwargs["timeout"] < 0
