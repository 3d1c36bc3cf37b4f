"""Input policy checks. Each returns an error message, or None if the value is acceptable."""

import re

from taskmaster.services.passwords import BCRYPT_MAX_BYTES

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(email: str) -> str | None:
    if not email or not email.strip():
        return "Email is required"
    if not EMAIL_PATTERN.match(normalize_email(email)):
        return "Please enter a valid email address"
    return None


def validate_name(name: str) -> str | None:
    stripped = (name or "").strip()
    if not stripped:
        return "Name is required"
    if len(stripped) < NAME_MIN_LENGTH:
        return f"Name must be at least {NAME_MIN_LENGTH} characters"
    if len(stripped) > NAME_MAX_LENGTH:
        return f"Name cannot exceed {NAME_MAX_LENGTH} characters"
    return None


def validate_password(password: str, min_length: int) -> str | None:
    if not password:
        return "Password is required"
    if len(password) < min_length:
        return f"Password must be at least {min_length} characters long"
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        return f"Password cannot exceed {BCRYPT_MAX_BYTES} bytes"
    if not any(c.isalpha() for c in password) or not any(c.isdigit() for c in password):
        return "Password must contain at least one letter and one number"
    return None
