"""Registration input rules, applied in a fixed order after the body is parsed."""

import re

from email_validator import EmailNotValidError, validate_email

from backoffice.core.cpf import is_valid_cpf
from backoffice.core.exceptions import ValidationException
from backoffice.schemas.auth_schema import RegisterIn

NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20
PASSWORD_SPECIAL_CHARS = "@$!%*?&"

PASSWORD_RULES = (
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a number"),
    (re.compile(f"[{re.escape(PASSWORD_SPECIAL_CHARS)}]"), f"one of {PASSWORD_SPECIAL_CHARS}"),
)


def validate_name(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValidationException(f"{label} must not be empty.")
    if len(value) > NAME_MAX_LENGTH:
        raise ValidationException(f"{label} must be at most {NAME_MAX_LENGTH} characters.")
    return value


def validate_email_address(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationException("Invalid email address.")
    return value.lower()


def validate_password(value: str) -> str:
    if not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH:
        raise ValidationException(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters."
        )
    missing = [label for pattern, label in PASSWORD_RULES if not pattern.search(value)]
    if missing:
        raise ValidationException(f"Password must contain {', '.join(missing)}.")
    return value


def validate_cpf(value: str) -> None:
    if not is_valid_cpf(value):
        raise ValidationException("Invalid CPF.")


def validate_registration(payload: RegisterIn) -> RegisterIn:
    """Run every structural rule, then the CPF checksum.

    Returns a copy with trimmed names and the lower-cased email; CPF
    canonicalization is left to the caller.
    """
    first_name = validate_name(payload.first_name, "First name")
    last_name = validate_name(payload.last_name, "Last name")
    email = validate_email_address(payload.email)
    validate_password(payload.password)
    validate_cpf(payload.cpf)
    return payload.model_copy(update={"first_name": first_name, "last_name": last_name, "email": email})
