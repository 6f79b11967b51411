"""CPF (Cadastro de Pessoas Físicas) helpers.

A CPF is eleven digits: a nine-digit base followed by two check digits, each
computed with a weighted mod-11 sum. None of these helpers raise on bad
input; callers decide how to respond to a ``False``.
"""

import re

CPF_LENGTH = 11

_NON_DIGITS = re.compile(r"\D")
_FORMAT = re.compile(r"^(\d{3})(\d{3})(\d{3})(\d{2})$")

# Pass the checksum but are never issued.
INVALID_SEQUENCES = frozenset(digit * CPF_LENGTH for digit in "0123456789")


def canonicalize_cpf(raw) -> str:
    """Return only the digits of ``raw`` (``""`` for non-string input)."""
    if not isinstance(raw, str):
        return ""
    return _NON_DIGITS.sub("", raw)


def _check_digit(digits: str) -> int:
    weight = len(digits) + 1
    total = sum(int(d) * (weight - i) for i, d in enumerate(digits))
    remainder = 11 - (total % 11)
    return 0 if remainder >= 10 else remainder


def cpf_check_digits(base: str) -> str:
    """Compute the two check digits for a nine-digit CPF base."""
    first = _check_digit(base)
    second = _check_digit(f"{base}{first}")
    return f"{first}{second}"


def is_valid_cpf(raw) -> bool:
    cpf = canonicalize_cpf(raw)

    if len(cpf) != CPF_LENGTH:
        return False
    if cpf in INVALID_SEQUENCES:
        return False

    return cpf[9:] == cpf_check_digits(cpf[:9])


def format_cpf(raw) -> str:
    """Display form ``###.###.###-##``; anything else is returned cleaned."""
    cpf = canonicalize_cpf(raw)
    return _FORMAT.sub(r"\1.\2.\3-\4", cpf)
