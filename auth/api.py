"""HTTP routes for authentication."""

from typing import Any

from fastapi import APIRouter, Depends

from api.base import success_response
from api.request import json_body, read_id, read_json
from auth.security_middleware import get_scope, require_auth
from auth.service import AuthService
from auth.types import LoginRequest, RegisterRequest, UserInfo, UserUpdate
from utils.request_scope import RequestScope


def create_auth_router(auth_service: AuthService) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/login")
    def login(
        scope: RequestScope = Depends(get_scope),
        payload: Any = Depends(json_body),
    ):
        """Exchange email and password for an access/refresh token pair.

        Public route. Unknown email and wrong password produce the same 401.
        """
        body = read_json(payload, LoginRequest)
        tokens = auth_service.login(scope, body.email, body.password)
        return success_response(tokens.model_dump(mode="json"))

    @router.post("/register")
    def register(
        scope: RequestScope = Depends(get_scope),
        payload: Any = Depends(json_body),
    ):
        """Create an account. Public route."""
        body = read_json(payload, RegisterRequest)
        auth_service.register(scope, body.email, body.password)
        return success_response()

    @router.get("/verify-auth")
    def verify_auth(scope: RequestScope = Depends(require_auth)):
        """Get the authenticated user."""
        user = auth_service.current_user(scope)
        return success_response(UserInfo(id=user.id, email=user.email).model_dump(mode="json"))

    @router.patch("/users/{user_id}")
    def update_user(
        user_id: str,
        scope: RequestScope = Depends(require_auth),
        payload: Any = Depends(json_body),
    ):
        """Update the caller's own email and/or password."""
        user_uuid = read_id(user_id)
        patch = read_json(payload, UserUpdate)
        user = auth_service.update_user(scope, user_uuid, patch)
        return success_response(UserInfo(id=user.id, email=user.email).model_dump(mode="json"))

    return router
