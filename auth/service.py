"""Authentication service - login, registration and current-user lookup."""

import logging
from datetime import timedelta
from uuid import UUID

from api.errors import id_not_found
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import InvalidCredentialsError
from auth.passwords import check_password, hash_password
from auth.token import TokenCodec
from auth.types import TokenPair, User, UserUpdate
from utils.request_scope import RequestScope, scope_logger

logger = logging.getLogger(__name__)


class AuthService:
    """Orchestrates email/password authentication.

    Handles:
    - Login (with enumeration protection)
    - Registration
    - Current user lookup and self-update
    """

    def __init__(self, config: AuthConfig, auth_db: AuthDatabase, token_codec: TokenCodec):
        self._config = config
        self._auth_db = auth_db
        self._token_codec = token_codec
        # Compared against when the email is unknown so that both failure
        # paths pay for one bcrypt check.
        self._dummy_hash = hash_password("dummy-password", config.password_hash_rounds)

    def login(self, scope: RequestScope, email: str, password: str) -> TokenPair:
        """Check credentials and issue an access/refresh token pair.

        The scope is unauthenticated here; only its deadline is used.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password. The
                error is identical in both cases.
        """
        email = email.lower().strip()
        user = self._auth_db.get_user_by_email(email, timeout=scope.remaining())

        if user is None:
            check_password(password, self._dummy_hash)
            raise InvalidCredentialsError()

        if not check_password(password, user.password_hash):
            raise InvalidCredentialsError()

        return TokenPair(
            token=self._token_codec.issue(
                user.id, timedelta(minutes=self._config.access_token_minutes)
            ),
            refresh_token=self._token_codec.issue(
                user.id, timedelta(hours=self._config.refresh_token_hours)
            ),
        )

    def register(self, scope: RequestScope, email: str, password: str) -> User:
        """Create a user with a hashed password.

        Raises:
            APIError: Conflict if the email is already registered.
        """
        email = email.lower().strip()
        password_hash = hash_password(password, self._config.password_hash_rounds)
        user = self._auth_db.create_user(email, password_hash, timeout=scope.remaining())
        scope_logger(logger, scope).info(f"User registered: {user.id}")
        return user

    def current_user(self, scope: RequestScope) -> User:
        """Load the authenticated user.

        Raises:
            APIError: Not found if the account was deleted after the token
                was issued.
        """
        user = self._auth_db.get_user_by_id(scope.principal_id, timeout=scope.remaining())
        if user is None:
            raise id_not_found(scope.principal_id)
        return user

    def update_user(self, scope: RequestScope, user_id: UUID, patch: UserUpdate) -> User:
        """Ownership-checked partial update of an account."""
        return self._auth_db.update_user(scope, user_id, patch)
