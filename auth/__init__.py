"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    MissingAuthHeaderError,
    MalformedAuthHeaderError,
    InvalidTokenError,
    TokenExpiredError,
    InvalidSubjectError,
    InvalidCredentialsError,
)
from auth.types import (
    User,
    UserInfo,
    UserUpdate,
    LoginRequest,
    RegisterRequest,
    TokenPair,
)
from auth.config import AuthConfig
from auth.token import TokenCodec
