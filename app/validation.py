"""Field validation rules.

Each check returns the translation key of the first failing rule for its
field, or None. ``collect_errors`` keeps the order in which fields are given.
"""

import re

from email_validator import EmailNotValidError, validate_email

USERNAME_MIN = 4
USERNAME_MAX = 32
PASSWORD_MIN = 6
PASSWORD_MAX_BYTES = 72  # bcrypt input limit
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).*$")


def check_username(username: str | None) -> str | None:
    if not username:
        return "username_null"
    if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
        return "username_size"
    return None


def is_valid_email(email: str) -> bool:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def check_email(email: str | None) -> str | None:
    if not email:
        return "email_null"
    if not is_valid_email(email):
        return "email_invalid"
    return None


def check_password(password: str | None) -> str | None:
    if not password:
        return "password_null"
    if len(password) < PASSWORD_MIN:
        return "password_size"
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return "password_max_size"
    if not PASSWORD_PATTERN.match(password):
        return "password_pattern"
    return None


def collect_errors(*checks: tuple[str, str | None]) -> dict[str, str]:
    """Build an ordered ``field -> key`` map from ``(field, key)`` pairs."""
    return {field: key for field, key in checks if key}
