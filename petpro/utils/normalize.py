from __future__ import annotations
import re
from typing import Optional

_NON_DIGITS = re.compile(r"\D")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def only_digits(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", value or "")


def normalize_email(value: str) -> str:
    return value.strip().lower()


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL.match(value.strip()))


def phone_ok(digits: str) -> bool:
    return 10 <= len(digits) <= 13


def cnpj_ok(digits: str) -> bool:
    return len(digits) == 14
