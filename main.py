"""Application factory and server entry point."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from api.errors import register_error_handlers
from api.middleware import REQUEST_ID_HEADER, RequestIDMiddleware
from api.todos import create_todos_router
from auth.api import create_auth_router
from auth.database import AuthDatabase
from auth.security_middleware import VerifyAuthMiddleware
from auth.service import AuthService
from auth.token import TokenCodec
from clients.postgres_client import PostgresClient
from core.config import AppConfig, load_config
from core.services.todo_service import TodoService

logger = logging.getLogger(__name__)

API_PREFIX = "/v1"


def build_services(config: AppConfig, postgres: PostgresClient) -> dict:
    """Wire services against one database client."""
    auth_db = AuthDatabase(postgres, config.auth.password_hash_rounds)
    return {
        "auth": AuthService(config.auth, auth_db, TokenCodec(config.auth.jwt_secret)),
        "todo": TodoService(postgres),
    }


def create_app(config: AppConfig, services: dict | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Loaded application config
        services: Prebuilt {"auth", "todo"} services; when omitted a
            PostgresClient is opened from config.database_url and closed
            on shutdown.
    """
    postgres = None
    if services is None:
        postgres = PostgresClient(config.database_url, maxconn=config.db_pool_max_connections)
        services = build_services(config, postgres)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if postgres is not None:
            postgres.close()

    app = FastAPI(title="todolist", lifespan=lifespan)

    # Added innermost first: CORS wraps RequestID, which wraps VerifyAuth
    app.add_middleware(
        VerifyAuthMiddleware,
        token_codec=TokenCodec(config.auth.jwt_secret),
        request_timeout_seconds=config.request_timeout_seconds,
    )
    app.add_middleware(RequestIDMiddleware)
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
            expose_headers=[REQUEST_ID_HEADER],
        )

    register_error_handlers(app)

    app.include_router(create_auth_router(services["auth"]), prefix=API_PREFIX)
    app.include_router(create_todos_router(services["todo"]), prefix=API_PREFIX)

    @app.get("/ping", response_class=PlainTextResponse)
    async def ping():
        return "200 OK"

    return app


def main() -> None:
    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting API on port {config.api_port}")
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.api_port, log_config=None)


if __name__ == "__main__":
    main()
