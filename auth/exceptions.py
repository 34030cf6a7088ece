"""Typed exceptions for auth failures.

All of them are unauthorized-class API errors; the subclasses only pin the
message so that callers (and tests) can tell the failure reasons apart.
"""

from api.errors import APIError, ErrorClass


class AuthError(APIError):
    """Base class for authentication errors."""

    default_message = "Authentication failed."

    def __init__(self, message: str | None = None):
        super().__init__(ErrorClass.UNAUTHORIZED, message or self.default_message)


class MissingAuthHeaderError(AuthError):
    """No Authorization header on the request."""

    default_message = "Authorization header is missing."


class MalformedAuthHeaderError(AuthError):
    """Authorization header does not use the Bearer scheme."""

    default_message = "Authorization header is not a Bearer token."


class InvalidTokenError(AuthError):
    """
    Token is malformed, badly signed, or uses an unexpected algorithm.

    Deliberately vague: the client learns nothing about which check failed.
    """

    default_message = "Token verification failed."


class TokenExpiredError(AuthError):
    """Token signature is valid but its expiry has passed."""

    default_message = "Token has expired."


class InvalidSubjectError(AuthError):
    """Token subject is missing, not a UUID, or the nil UUID."""

    default_message = "Token subject is not a valid UUID."


class InvalidCredentialsError(AuthError):
    """
    Login failed.

    Same message whether the email is unknown or the password is wrong,
    so responses never reveal which accounts exist.
    """

    default_message = "Incorrect email or password."
