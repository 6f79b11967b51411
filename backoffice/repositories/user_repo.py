import logging
import uuid
from datetime import datetime, timezone
from functools import wraps
from typing import Optional

import asyncpg
from asyncpg import Connection, UniqueViolationError

from backoffice.core.cpf import canonicalize_cpf
from backoffice.core.exceptions import (
    DuplicateIdentityException,
    IdentityNotFoundException,
    IdentityStoreUnavailableException,
)

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    OSError,
    TimeoutError,
)

# unique constraint name -> field reported back to the client
CONSTRAINT_FIELDS = {
    "users_email_key": "email",
    "users_cpf_key": "CPF",
}

USER_COLUMNS = "id, first_name, last_name, email, cpf, hashed_password, is_active, created_at, updated_at"


def translate_transient_errors(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except TRANSIENT_ERRORS as e:
            logger.error(f"User store unavailable during {func.__name__}: {e!r}")
            raise IdentityStoreUnavailableException() from e
    return wrapper


class UserRepository:

    def __init__(self, conn: Connection):
        self.conn = conn

    @staticmethod
    def _to_dict(record) -> Optional[dict]:
        if not record:
            return None
        user = dict(record)
        user["id"] = str(user["id"])
        return user

    # ------------------ Retrieval Methods ------------------ #

    @translate_transient_errors
    async def get_by_email(self, email: str) -> Optional[dict]:
        sql = f"SELECT {USER_COLUMNS} FROM users WHERE email = $1;"
        record = await self.conn.fetchrow(sql, email.lower())
        return self._to_dict(record)

    @translate_transient_errors
    async def get_by_cpf(self, cpf: str) -> Optional[dict]:
        sql = f"SELECT {USER_COLUMNS} FROM users WHERE cpf = $1;"
        record = await self.conn.fetchrow(sql, cpf)
        return self._to_dict(record)

    async def find_by_email_or_cpf(self, identifier: str) -> Optional[dict]:
        if "@" in identifier:
            return await self.get_by_email(identifier)
        cpf = canonicalize_cpf(identifier)
        if not cpf:
            return None
        return await self.get_by_cpf(cpf)

    @translate_transient_errors
    async def get_by_id(self, user_id: str) -> dict:
        try:
            user_uuid = uuid.UUID(str(user_id))
        except ValueError:
            raise IdentityNotFoundException()

        sql = f"SELECT {USER_COLUMNS} FROM users WHERE id = $1 AND is_active = TRUE;"
        record = await self.conn.fetchrow(sql, user_uuid)
        if not record:
            raise IdentityNotFoundException()
        return self._to_dict(record)

    # ------------------ Creation ------------------ #

    @translate_transient_errors
    async def create(self, user_in: dict) -> dict:
        sql = f"""
            INSERT INTO users (id, first_name, last_name, email, cpf, hashed_password, is_active, created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $8)
            RETURNING {USER_COLUMNS};
        """
        now = datetime.now(timezone.utc)
        try:
            record = await self.conn.fetchrow(
                sql,
                uuid.uuid4(),
                user_in["first_name"],
                user_in["last_name"],
                user_in["email"],
                user_in["cpf"],
                user_in["hashed_password"],
                user_in.get("is_active", True),
                now,
            )
        except UniqueViolationError as e:
            field = CONSTRAINT_FIELDS.get(getattr(e, "constraint_name", None), "email or CPF")
            logger.info(f"Rejected duplicate registration on {field}")
            raise DuplicateIdentityException(field) from e
        return self._to_dict(record)

    # ------------------ Status ------------------ #

    @translate_transient_errors
    async def set_active(self, user_id: str, is_active: bool) -> dict:
        sql = f"""
            UPDATE users SET is_active = $1, updated_at = $2
            WHERE id = $3
            RETURNING {USER_COLUMNS};
        """
        try:
            user_uuid = uuid.UUID(str(user_id))
        except ValueError:
            raise IdentityNotFoundException()
        record = await self.conn.fetchrow(sql, is_active, datetime.now(timezone.utc), user_uuid)
        if not record:
            raise IdentityNotFoundException()
        return self._to_dict(record)
