from datetime import datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UserOut(BaseModel):
    """Public view of an identity; the password hash never leaves the service."""
    id: str
    first_name: str
    last_name: str
    email: str
    cpf: str
    full_name: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @classmethod
    def from_record(cls, user: dict) -> "UserOut":
        return cls.model_validate({**user, "full_name": full_name(user)})


class ProfileOut(UserOut):
    is_active: bool
    created_at: datetime
    updated_at: datetime


def full_name(user: dict) -> str:
    return f"{user['first_name']} {user['last_name']}"
