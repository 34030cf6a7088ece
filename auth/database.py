"""Database operations for authentication.

Owns the users table. Lookups run before any principal is established
(login, register); the self-update path runs behind the Require stage and
uses the same locked read-modify-write as todos.
"""

import logging
from uuid import UUID, uuid4

import psycopg2.errors

from api.errors import conflict, id_not_found, permission_denied
from auth.passwords import DEFAULT_ROUNDS, hash_password
from auth.types import User, UserUpdate
from clients.postgres_client import PostgresClient
from utils.request_scope import RequestScope
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_USER_COLUMNS = "id, email, password_hash, created_at, updated_at"


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient, password_hash_rounds: int = DEFAULT_ROUNDS):
        self._db = postgres
        self._rounds = password_hash_rounds

    def get_user_by_email(self, email: str, timeout: float | None = None) -> User | None:
        """Find user by email (case-insensitive)."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = lower(%s)",
            (email,),
            timeout=timeout,
        )
        if row is None:
            return None
        return User.model_validate(row)

    def get_user_by_id(self, user_id: UUID, timeout: float | None = None) -> User | None:
        """Find user by ID."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (user_id,),
            timeout=timeout,
        )
        if row is None:
            return None
        return User.model_validate(row)

    def create_user(self, email: str, password_hash: str, timeout: float | None = None) -> User:
        """
        Create new user with email (lowercased).

        Raises:
            APIError: Conflict if the email is already registered.
        """
        now = now_utc()
        try:
            row = self._db.execute_single(
                f"""INSERT INTO users (id, email, password_hash, created_at, updated_at)
                    VALUES (%s, lower(%s), %s, %s, %s)
                    RETURNING {_USER_COLUMNS}""",
                (uuid4(), email, password_hash, now, now),
                timeout=timeout,
            )
        except psycopg2.errors.UniqueViolation:
            raise conflict("Email", email.lower())
        return User.model_validate(row)

    def update_user(self, scope: RequestScope, user_id: UUID, patch: UserUpdate) -> User:
        """
        Apply a partial update to the caller's own account.

        The row is locked for the whole transaction; a user may only
        modify their own row.

        Raises:
            APIError: Not found, permission denied, or conflict on email.
        """
        with self._db.transaction(timeout=scope.remaining()) as cur:
            # FOR UPDATE blocks other writers on this row until we commit
            cur.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s FOR UPDATE",
                (user_id,),
            )
            row = cur.fetchone()
            if row is None:
                raise id_not_found(user_id)

            user = User.model_validate(row)
            if user.id != scope.principal_id:
                raise permission_denied()

            email = patch.email.value_or(user.email).lower()
            password_hash = user.password_hash
            if patch.password.defined:
                password_hash = hash_password(patch.password.value, self._rounds)

            try:
                cur.execute(
                    f"""UPDATE users
                        SET email = %s, password_hash = %s, updated_at = %s
                        WHERE id = %s
                        RETURNING {_USER_COLUMNS}""",
                    (email, password_hash, now_utc(), user_id),
                )
            except psycopg2.errors.UniqueViolation:
                raise conflict("Email", email)

            updated = cur.fetchone()
            if updated is None:
                raise id_not_found(user_id)

        return User.model_validate(updated)
