"""/v1/todos: CRUD endpoints for the caller's todos."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from api.base import success_response
from api.request import json_body, read_id, read_json, read_query
from auth.security_middleware import require_auth
from core.models import TodoCreate, TodoFilter, TodoUpdate
from core.services.todo_service import TodoService
from utils.request_scope import RequestScope


def create_todos_router(todo_service: TodoService) -> APIRouter:
    """Create todos router with injected service. Every route is private."""
    router = APIRouter(tags=["todos"])

    @router.get("/todos")
    def list_todos(request: Request, scope: RequestScope = Depends(require_auth)):
        filters = read_query(request, TodoFilter)
        todos = todo_service.list_all(scope, filters)
        return success_response([t.model_dump(mode="json") for t in todos])

    @router.post("/todos")
    def create_todo(
        scope: RequestScope = Depends(require_auth),
        payload: Any = Depends(json_body),
    ):
        data = read_json(payload, TodoCreate)
        todo = todo_service.create(scope, data)
        return success_response(todo.model_dump(mode="json"))

    @router.get("/todos/{todo_id}")
    def get_todo(todo_id: str, scope: RequestScope = Depends(require_auth)):
        todo = todo_service.get(scope, read_id(todo_id))
        return success_response(todo.model_dump(mode="json"))

    @router.patch("/todos/{todo_id}")
    def update_todo(
        todo_id: str,
        scope: RequestScope = Depends(require_auth),
        payload: Any = Depends(json_body),
    ):
        """Partial update. Keys missing from the body are left unchanged."""
        todo_uuid = read_id(todo_id)
        patch = read_json(payload, TodoUpdate)
        todo = todo_service.update(scope, todo_uuid, patch)
        return success_response(todo.model_dump(mode="json"))

    @router.delete("/todos/{todo_id}")
    def delete_todo(todo_id: str, scope: RequestScope = Depends(require_auth)):
        todo_service.delete(scope, read_id(todo_id))
        return success_response()

    return router
