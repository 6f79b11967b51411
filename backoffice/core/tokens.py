"""Stateless bearer tokens (JWT) for authenticated sessions."""

import math
from datetime import datetime, timedelta, timezone
from typing import Callable

from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from backoffice.core.exceptions import InvalidTokenException


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenPayload(BaseModel):
    sub: str
    email: str
    iat: int
    exp: int


class SessionIssuer:
    """Signs and verifies access tokens.

    Tokens carry ``sub`` (identity id), ``email``, ``iat`` and ``exp``. No
    server-side state is kept: a token is valid while its signature checks
    out and ``exp`` lies in the future according to ``clock``.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock

    @classmethod
    def from_settings(cls, settings) -> "SessionIssuer":
        return cls(
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def issue(self, identity_id: str, email: str) -> str:
        issued_at = self.clock()
        to_encode = {
            "sub": str(identity_id),
            "email": email,
            "iat": int(issued_at.timestamp()),
            # rounded up so the token never lives shorter than the ttl
            "exp": math.ceil((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenPayload:
        """Return the decoded claims or raise ``InvalidTokenException``.

        Malformed input, a bad signature, missing claims and expiry all end
        in the same exception.
        """
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
            payload = TokenPayload(**claims)
        except (JWTError, ValidationError, TypeError, AttributeError):
            raise InvalidTokenException()

        if payload.exp <= self.clock().timestamp():
            raise InvalidTokenException()
        return payload
