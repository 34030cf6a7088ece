"""Signed bearer tokens (JWT, HS256).

Claims are exactly {sub, iat, exp}. The codec holds nothing but the shared
secret, so a single instance is safe to use from every request thread.
"""

from datetime import timedelta
from uuid import UUID

import jwt

from auth.exceptions import InvalidSubjectError, InvalidTokenError, TokenExpiredError
from utils.timezone import now_utc

_NIL_UUID = UUID(int=0)


class TokenCodec:
    """Issues and verifies HS256-signed tokens for a user id."""

    ALGORITHM = "HS256"

    def __init__(self, secret: str | bytes):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret

    def issue(self, subject: UUID, ttl: timedelta) -> str:
        """Sign a token for `subject` that expires `ttl` from now."""
        now = int(now_utc().timestamp())
        claims = {
            "sub": str(subject),
            "iat": now,
            "exp": now + int(ttl.total_seconds()),
        }
        return jwt.encode(claims, self._secret, algorithm=self.ALGORITHM)

    def verify(self, token: str) -> UUID:
        """
        Verify a token and return its subject.

        Only HS256 is accepted; "none" and asymmetric algorithms fail closed.
        No clock-skew leeway is granted.

        Raises:
            InvalidTokenError: Malformed token, bad signature, wrong algorithm
                or missing expiry.
            TokenExpiredError: Signature is valid but `exp` has passed.
            InvalidSubjectError: `sub` is missing, not a UUID, or nil.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.ALGORITHM],
                options={"require": ["exp"]},
                leeway=0,
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.exceptions.InvalidSubjectError as e:
            raise InvalidSubjectError() from e
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError() from e

        return self._parse_subject(claims.get("sub"))

    @staticmethod
    def _parse_subject(sub) -> UUID:
        if not isinstance(sub, str):
            raise InvalidSubjectError()
        try:
            user_id = UUID(sub)
        except ValueError:
            raise InvalidSubjectError()
        if user_id == _NIL_UUID:
            raise InvalidSubjectError()
        return user_id
