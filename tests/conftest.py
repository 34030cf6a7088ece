"""Shared test fixtures for the todolist test suite."""

import os
from pathlib import Path
from uuid import UUID

import pytest

from auth.token import TokenCodec
from utils.request_scope import RequestScope, authenticated_scope

# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test user - use for single-user tests
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "testuser@test.local"

# Secondary test user - use for ownership tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")
TEST_USER_B_EMAIL = "testuser-b@test.local"

TEST_JWT_SECRET = "test-secret-that-is-at-least-32-characters-long"

MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"


# =============================================================================
# SCOPE / TOKEN FIXTURES
# =============================================================================


@pytest.fixture
def test_user_id() -> UUID:
    """The primary test user's ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_b_id() -> UUID:
    """The secondary test user's ID (for ownership tests)."""
    return TEST_USER_B_ID


@pytest.fixture
def scope(test_user_id) -> RequestScope:
    """Authenticated scope for the primary test user."""
    return authenticated_scope(test_user_id, request_id="test-request")


@pytest.fixture
def scope_b(test_user_b_id) -> RequestScope:
    """Authenticated scope for the secondary test user."""
    return authenticated_scope(test_user_b_id, request_id="test-request-b")


@pytest.fixture
def token_codec() -> TokenCodec:
    return TokenCodec(TEST_JWT_SECRET)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="session")
def db():
    """
    Session-scoped PostgresClient against TEST_DATABASE_URL.

    Skips the requesting test when no database is configured. The schema
    is (re)applied from migrations/ once per session.
    """
    database_url = os.environ.get("TEST_DATABASE_URL")
    if not database_url:
        pytest.skip("TEST_DATABASE_URL not set")

    from clients.postgres_client import PostgresClient

    client = PostgresClient(database_url)
    for migration in sorted(MIGRATIONS_DIR.glob("*.sql")):
        client.execute(migration.read_text())
    yield client
    client.close()


@pytest.fixture
def clean_db(db):
    """Empty tables before and after each database test."""
    db.execute("TRUNCATE todos, users CASCADE")
    yield db
    db.execute("TRUNCATE todos, users CASCADE")


@pytest.fixture
def seeded_users(clean_db):
    """Insert both test users with a placeholder password hash."""
    for user_id, email in ((TEST_USER_ID, TEST_USER_EMAIL), (TEST_USER_B_ID, TEST_USER_B_EMAIL)):
        clean_db.execute(
            "INSERT INTO users (id, email, password_hash) VALUES (%s, %s, %s)",
            (user_id, email, "not-a-real-hash"),
        )
    return clean_db
