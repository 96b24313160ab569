"""
Input validators — framework-agnostic, pure functions.

Each ``validate_*`` helper returns the user-facing error message for the first
rule that fails, or ``None`` when the value is acceptable. The service layer
turns a message into a ``ValidationError``.
"""

from __future__ import annotations

import re
from typing import Any, Optional

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
OTP_PATTERN = re.compile(r"^\d{6}$")

MIN_PASSWORD_LENGTH = 8
NAME_MAX_LENGTH = 50
MIN_AGE = 13
MAX_AGE = 120


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_email(identifier: str) -> bool:
    """Return True if *identifier* has the shape of an email address."""
    return bool(EMAIL_PATTERN.match(identifier.strip()))


def validate_email(email: Optional[str]) -> Optional[str]:
    if not email or not email.strip():
        return "Email is required"
    if not is_email(email):
        return "Please provide a valid email address"
    return None


def validate_username(username: Optional[str]) -> Optional[str]:
    if not username or not username.strip():
        return "Username is required"
    username = username.strip()
    if not USERNAME_PATTERN.match(username):
        return "Username can only contain letters, numbers, and underscores"
    if len(username) < 3 or len(username) > 20:
        return "Username must be between 3 and 20 characters"
    return None


def validate_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    if not first_name or not first_name.strip():
        return "First name is required"
    if not last_name or not last_name.strip():
        return "Last name is required"
    full_name = f"{first_name.strip()} {last_name.strip()}"
    if len(full_name) < 2:
        return "Name must be at least 2 characters long"
    if len(full_name) > NAME_MAX_LENGTH:
        return "Name cannot exceed 50 characters"
    return None


def parse_age(age: Any) -> Optional[int]:
    """Parse *age* the way a form field arrives: int, or a numeric string."""
    if isinstance(age, bool):
        return None
    if isinstance(age, int):
        return age
    if isinstance(age, float) and age.is_integer():
        return int(age)
    if isinstance(age, str) and age.strip().lstrip("-").isdigit():
        return int(age.strip())
    return None


def validate_age(age: Any) -> Optional[str]:
    if age is None or age == "":
        return "Age is required"
    parsed = parse_age(age)
    if parsed is None or parsed < MIN_AGE or parsed > MAX_AGE:
        return f"Age must be between {MIN_AGE} and {MAX_AGE}"
    return None


def validate_otp_format(otp: Optional[str]) -> Optional[str]:
    if not otp or not otp.strip():
        return "OTP is required"
    if not OTP_PATTERN.match(otp.strip()):
        return "OTP must be a 6-digit number"
    return None


def validate_password_length(password: Optional[str], label: str = "Password") -> Optional[str]:
    """Registration rule: only a minimum length."""
    if not password or not password.strip():
        return f"{label} is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"{label} must be at least {MIN_PASSWORD_LENGTH} characters long"
    return None


def password_policy_violations(password: str) -> list[str]:
    """Return every unmet requirement of the strong password policy."""
    missing = []
    if len(password) < MIN_PASSWORD_LENGTH:
        missing.append(f"At least {MIN_PASSWORD_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        missing.append("At least one uppercase letter")
    if not re.search(r"[a-z]", password):
        missing.append("At least one lowercase letter")
    if not re.search(r"\d", password):
        missing.append("At least one number")
    return missing
