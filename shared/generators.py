"""
Random code generators — pure, side-effect-free functions.

All generators use the ``secrets`` module.
"""

from __future__ import annotations

import secrets
import string


def generate_otp_code(length: int = 6) -> str:
    """Generate a uniformly random numeric OTP.

    Leading zeros are allowed, so every ``10 ** length`` value is equally
    likely.

    Args:
        length: Number of digits (default 6).

    Returns:
        String of random decimal digits.
    """
    return "".join(secrets.choice(string.digits) for _ in range(length))


def username_candidates(email: str):
    """Yield usernames derived from the local part of *email*.

    ``jane.doe@x.io`` yields ``jane_doe``, ``jane_doe1``, ``jane_doe2`` ...
    Characters outside ``[a-z0-9_]`` become underscores; the base is padded
    or truncated to stay within the 3–20 character username rules.
    """
    local = email.split("@", 1)[0].lower()
    base = "".join(ch if ch.isascii() and (ch.isalnum() or ch == "_") else "_" for ch in local)
    base = (base or "user")[:16]
    if len(base) < 3:
        base = base.ljust(3, "_")
    yield base
    counter = 1
    while True:
        yield f"{base}{counter}"
        counter += 1
