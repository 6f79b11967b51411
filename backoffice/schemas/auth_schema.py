from dataclasses import dataclass
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from backoffice.schemas.user_schema import UserOut


class RegisterIn(BaseModel):
    # only the shape is checked here; content rules live in services/validators.py
    first_name: str
    last_name: str
    email: str
    cpf: str
    password: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginIn(BaseModel):
    identifier: str
    password: str


class AuthResponse(BaseModel):
    access_token: str
    user: UserOut


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved from a verified bearer token."""
    subject: str
    email: str
