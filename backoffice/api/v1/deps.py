from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from asyncpg import Connection

from backoffice.core.config import settings
from backoffice.core.exceptions import (
    IdentityNotFoundException,
    InvalidTokenException,
    UnauthorizedException,
)
from backoffice.core.security import BcryptPasswordHasher, PasswordHasher
from backoffice.core.tokens import SessionIssuer
from backoffice.db.session import get_db_connection
from backoffice.repositories.user_repo import UserRepository
from backoffice.schemas.auth_schema import AuthContext
from backoffice.services.auth_services import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_password_hasher() -> PasswordHasher:
    return BcryptPasswordHasher(rounds=settings.BCRYPT_ROUNDS)


@lru_cache(maxsize=1)
def get_session_issuer() -> SessionIssuer:
    return SessionIssuer.from_settings(settings)


def get_user_repo(conn: Connection = Depends(get_db_connection)) -> UserRepository:
    return UserRepository(conn)


def get_auth_service(
        user_repo: UserRepository = Depends(get_user_repo),
        password_hasher: PasswordHasher = Depends(get_password_hasher),
        session_issuer: SessionIssuer = Depends(get_session_issuer),
) -> AuthService:
    return AuthService(user_repo, password_hasher, session_issuer)


async def get_current_identity(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        session_issuer: SessionIssuer = Depends(get_session_issuer),
) -> AuthContext:
    """Guard for protected routes: resolves the bearer token into an AuthContext."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException()

    try:
        payload = session_issuer.verify(credentials.credentials)
    except InvalidTokenException:
        raise UnauthorizedException()

    return AuthContext(subject=payload.sub, email=payload.email)


async def get_current_user(
        identity: AuthContext = Depends(get_current_identity),
        user_repo: UserRepository = Depends(get_user_repo),
) -> dict:
    try:
        return await user_repo.get_by_id(identity.subject)
    except IdentityNotFoundException:
        raise UnauthorizedException()
