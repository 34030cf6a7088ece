"""Fixtures for HTTP-level tests of the todo routes."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.todos import create_todos_router
from auth.security_middleware import VerifyAuthMiddleware
from core.services.todo_service import TodoService


@pytest.fixture
def mock_todo_service():
    return Mock(spec=TodoService)


@pytest.fixture
def app(mock_todo_service, token_codec):
    """FastAPI app with the auth pipeline, error handlers and todo routes."""
    app = FastAPI()
    app.add_middleware(VerifyAuthMiddleware, token_codec=token_codec, request_timeout_seconds=10)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(create_todos_router(mock_todo_service), prefix="/v1")
    return app


@pytest.fixture
def client(app, token_codec, test_user_id):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    token = token_codec.issue(test_user_id, timedelta(minutes=5))
    c.headers["Authorization"] = f"Bearer {token}"
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no Authorization header)."""
    return TestClient(app, raise_server_exceptions=False)
