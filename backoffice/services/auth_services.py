import logging
from functools import lru_cache
from typing import Optional

from starlette.concurrency import run_in_threadpool

from backoffice.core.cpf import canonicalize_cpf
from backoffice.core.exceptions import InvalidCredentialsException
from backoffice.core.security import PasswordHasher
from backoffice.core.tokens import SessionIssuer
from backoffice.repositories.user_repo import UserRepository
from backoffice.schemas.auth_schema import AuthResponse, RegisterIn
from backoffice.schemas.user_schema import ProfileOut, UserOut
from backoffice.services.validators import validate_registration

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, user_repo: UserRepository, password_hasher: PasswordHasher, session_issuer: SessionIssuer):
        self.user_repo = user_repo
        self.password_hasher = password_hasher
        self.session_issuer = session_issuer

    async def register(self, user_in: RegisterIn) -> AuthResponse:
        user_in = validate_registration(user_in)

        hashed_password = await run_in_threadpool(self.password_hasher.hash, user_in.password)
        user_data = {
            "first_name": user_in.first_name,
            "last_name": user_in.last_name,
            "email": user_in.email,
            "cpf": canonicalize_cpf(user_in.cpf),
            "hashed_password": hashed_password,
        }
        user = await self.user_repo.create(user_data)
        logger.info(f"Registered user {user['id']}")
        return self._auth_response(user)

    async def authenticate(self, identifier: str, password: str) -> Optional[dict]:
        user = await self.user_repo.find_by_email_or_cpf(identifier)
        if not user or not user.get("is_active", False):
            # same hashing cost as a real check so timing does not reveal the account
            dummy_hash = await run_in_threadpool(dummy_hash_for, self.password_hasher)
            await run_in_threadpool(self.password_hasher.verify, password, dummy_hash)
            return None
        if not await run_in_threadpool(self.password_hasher.verify, password, user.get("hashed_password", "")):
            return None
        return user

    async def login(self, identifier: str, password: str) -> AuthResponse:
        user = await self.authenticate(identifier, password)
        if not user:
            logger.debug("Login rejected")
            raise InvalidCredentialsException()
        return self._auth_response(user)

    def get_profile(self, user: dict) -> ProfileOut:
        return ProfileOut.from_record(user)

    def create_token_for_user(self, user: dict) -> str:
        return self.session_issuer.issue(user["id"], user["email"])

    def _auth_response(self, user: dict) -> AuthResponse:
        return AuthResponse(
            access_token=self.create_token_for_user(user),
            user=UserOut.from_record(user),
        )


@lru_cache(maxsize=8)
def dummy_hash_for(password_hasher: PasswordHasher) -> str:
    return password_hasher.hash("dummy-password")
