import os

# Settings() is instantiated at import time and needs these.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_HOST", "localhost")
os.environ.setdefault("DB_PORT", "5432")
os.environ.setdefault("DB_NAME", "backoffice_test")
os.environ.setdefault("DB_USER", "backoffice")
os.environ.setdefault("DB_PASS", "backoffice")

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backoffice.api.v1 import routers
from backoffice.api.v1.deps import get_password_hasher, get_session_issuer, get_user_repo
from backoffice.core.cpf import canonicalize_cpf
from backoffice.core.exceptions import (
    DuplicateIdentityException,
    IdentityNotFoundException,
    register_exception_handlers,
)
from backoffice.core.security import BcryptPasswordHasher
from backoffice.core.tokens import SessionIssuer

TEST_SECRET = "test-secret-key"


class FakeUserRepository:
    """In-memory stand-in for UserRepository with the same unique constraints."""

    def __init__(self) -> None:
        self.users: dict[str, dict] = {}

    async def create(self, user_in: dict) -> dict:
        # no await between check and insert, so this is atomic on the event loop
        for existing in self.users.values():
            if existing["email"] == user_in["email"]:
                raise DuplicateIdentityException("email")
            if existing["cpf"] == user_in["cpf"]:
                raise DuplicateIdentityException("CPF")
        now = datetime.now(timezone.utc)
        user = {
            "id": str(uuid.uuid4()),
            "first_name": user_in["first_name"],
            "last_name": user_in["last_name"],
            "email": user_in["email"],
            "cpf": user_in["cpf"],
            "hashed_password": user_in["hashed_password"],
            "is_active": user_in.get("is_active", True),
            "created_at": now,
            "updated_at": now,
        }
        self.users[user["id"]] = user
        return dict(user)

    async def get_by_email(self, email: str):
        for user in self.users.values():
            if user["email"] == email.lower():
                return dict(user)
        return None

    async def get_by_cpf(self, cpf: str):
        for user in self.users.values():
            if user["cpf"] == cpf:
                return dict(user)
        return None

    async def find_by_email_or_cpf(self, identifier: str):
        if "@" in identifier:
            return await self.get_by_email(identifier)
        return await self.get_by_cpf(canonicalize_cpf(identifier))

    async def get_by_id(self, user_id: str) -> dict:
        user = self.users.get(user_id)
        if not user or not user["is_active"]:
            raise IdentityNotFoundException()
        return dict(user)

    async def set_active(self, user_id: str, is_active: bool) -> dict:
        user = self.users.get(user_id)
        if not user:
            raise IdentityNotFoundException()
        user["is_active"] = is_active
        user["updated_at"] = datetime.now(timezone.utc)
        return dict(user)


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def user_repo() -> FakeUserRepository:
    return FakeUserRepository()


@pytest.fixture
def password_hasher() -> BcryptPasswordHasher:
    # minimum bcrypt cost keeps the suite fast
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def session_issuer() -> SessionIssuer:
    return SessionIssuer(secret_key=TEST_SECRET, ttl=timedelta(minutes=5))


@pytest.fixture
def registration() -> dict:
    return {
        "firstName": "João",
        "lastName": "Silva",
        "email": "joao.silva@email.com",
        "cpf": "52998224725",
        "password": "MinhaSenh@123",
    }


def build_app(user_repo, password_hasher, session_issuer) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(routers.router)
    app.dependency_overrides[get_user_repo] = lambda: user_repo
    app.dependency_overrides[get_password_hasher] = lambda: password_hasher
    app.dependency_overrides[get_session_issuer] = lambda: session_issuer
    return app


@pytest.fixture
def api_client(user_repo, password_hasher, session_issuer):
    """FastAPI test client wired to the in-memory repository."""
    with TestClient(build_app(user_repo, password_hasher, session_issuer)) as client:
        yield client
