import hashlib
from typing import Protocol

from passlib.context import CryptContext


class PasswordHasher(Protocol):
    def hash(self, password: str) -> str: ...

    def verify(self, plain_password: str, hashed_password: str) -> bool: ...


class BcryptPasswordHasher:
    """bcrypt via passlib; the plaintext is SHA-256 digested first so any
    length fits inside bcrypt's 72-byte input limit."""

    def __init__(self, rounds: int = 12):
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    @staticmethod
    def _digest(password: str) -> str:
        return hashlib.sha256(password.encode("utf-8")).hexdigest()

    def hash(self, password: str) -> str:
        return self.pwd_context.hash(self._digest(password))

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        try:
            return self.pwd_context.verify(self._digest(plain_password), hashed_password)
        except ValueError:
            # stored value is not a recognisable hash
            return False
