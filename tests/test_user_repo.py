import asyncio
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from asyncpg import UniqueViolationError

from backoffice.core.exceptions import (
    DuplicateIdentityException,
    IdentityNotFoundException,
    IdentityStoreUnavailableException,
)
from backoffice.repositories.user_repo import UserRepository

USER_ID = uuid.UUID("6f1d0c6e-8a4b-4f43-9a0e-2b7f1f5c9a10")


def user_record(**overrides) -> dict:
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    record = {
        "id": USER_ID,
        "first_name": "João",
        "last_name": "Silva",
        "email": "joao.silva@email.com",
        "cpf": "52998224725",
        "hashed_password": "$2b$12$hash",
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    record.update(overrides)
    return record


def new_user() -> dict:
    return {
        "first_name": "João",
        "last_name": "Silva",
        "email": "joao.silva@email.com",
        "cpf": "52998224725",
        "hashed_password": "$2b$12$hash",
    }


@pytest.fixture
def conn():
    return AsyncMock()


def unique_violation(constraint: str) -> UniqueViolationError:
    exc = UniqueViolationError("duplicate key value violates unique constraint")
    exc.constraint_name = constraint
    return exc


def test_create_returns_stringified_id(conn):
    conn.fetchrow.return_value = user_record()

    user = asyncio.run(UserRepository(conn).create(new_user()))

    assert user["id"] == str(USER_ID)
    sql, *args = conn.fetchrow.await_args.args
    assert sql.strip().startswith("INSERT INTO users")
    assert isinstance(args[0], uuid.UUID)
    assert args[1:7] == ["João", "Silva", "joao.silva@email.com", "52998224725", "$2b$12$hash", True]


@pytest.mark.parametrize(
    "constraint, field",
    [("users_email_key", "email"), ("users_cpf_key", "CPF"), ("something_else", "email or CPF")],
)
def test_unique_violation_becomes_duplicate_identity(conn, constraint, field):
    conn.fetchrow.side_effect = unique_violation(constraint)

    with pytest.raises(DuplicateIdentityException) as exc_info:
        asyncio.run(UserRepository(conn).create(new_user()))

    assert exc_info.value.status_code == 409
    assert exc_info.value.field == field


def test_find_by_email_lower_cases_identifier(conn):
    conn.fetchrow.return_value = user_record()

    user = asyncio.run(UserRepository(conn).find_by_email_or_cpf("Joao.Silva@EMAIL.com"))

    assert user["email"] == "joao.silva@email.com"
    sql, email = conn.fetchrow.await_args.args
    assert "WHERE email = $1" in sql
    assert email == "joao.silva@email.com"


def test_find_by_cpf_canonicalizes_identifier(conn):
    conn.fetchrow.return_value = None

    assert asyncio.run(UserRepository(conn).find_by_email_or_cpf("529.982.247-25")) is None

    sql, cpf = conn.fetchrow.await_args.args
    assert "WHERE cpf = $1" in sql
    assert cpf == "52998224725"


def test_find_with_no_digits_skips_query(conn):
    assert asyncio.run(UserRepository(conn).find_by_email_or_cpf("joao")) is None
    conn.fetchrow.assert_not_awaited()


def test_get_by_id_only_returns_active_users(conn):
    conn.fetchrow.return_value = None

    with pytest.raises(IdentityNotFoundException):
        asyncio.run(UserRepository(conn).get_by_id(str(USER_ID)))

    sql, user_id = conn.fetchrow.await_args.args
    assert "is_active = TRUE" in sql
    assert user_id == USER_ID


def test_get_by_id_with_malformed_id_is_not_found(conn):
    with pytest.raises(IdentityNotFoundException):
        asyncio.run(UserRepository(conn).get_by_id("not-a-uuid"))
    conn.fetchrow.assert_not_awaited()


def test_set_active_updates_status(conn):
    conn.fetchrow.return_value = user_record(is_active=False)

    user = asyncio.run(UserRepository(conn).set_active(str(USER_ID), False))

    assert user["is_active"] is False
    sql, is_active, _updated_at, user_id = conn.fetchrow.await_args.args
    assert sql.strip().startswith("UPDATE users")
    assert is_active is False
    assert user_id == USER_ID


@pytest.mark.parametrize("error", [ConnectionRefusedError(), TimeoutError()])
def test_transient_errors_are_opaque(conn, error):
    conn.fetchrow.side_effect = error

    with pytest.raises(IdentityStoreUnavailableException) as exc_info:
        asyncio.run(UserRepository(conn).get_by_email("joao.silva@email.com"))

    assert exc_info.value.status_code == 503
    assert exc_info.value.detail == "Service temporarily unavailable."
