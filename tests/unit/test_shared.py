"""
Unit tests for the shared/ utility modules.

Covers:
- shared.validators      (validate_email, validate_username, validate_name,
                          validate_age, validate_otp_format,
                          validate_password_length, password_policy_violations)
- shared.generators      (generate_otp_code, username_candidates)
- shared.crypto          (hash_password, verify_password, hash_code, code_matches)
- shared.datetime_utils  (ensure_aware)
- shared.logging         (hash_ip, redact_sensitive_fields)
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from itertools import islice

import pytest

from shared import logging as app_logging
from shared.crypto import code_matches, hash_code, hash_password, verify_password
from shared.datetime_utils import ensure_aware
from shared.generators import generate_otp_code, username_candidates
from shared.validators import (
    is_email,
    normalize_email,
    parse_age,
    password_policy_violations,
    validate_age,
    validate_email,
    validate_name,
    validate_otp_format,
    validate_password_length,
    validate_username,
)


# ── validators ────────────────────────────────────────────────────────────────


class TestEmail:
    @pytest.mark.parametrize(
        "email, expected",
        [
            ("ada@example.com", None),
            ("  ada@example.com ", None),
            ("", "Email is required"),
            (None, "Email is required"),
            ("ada@example", "Please provide a valid email address"),
            ("ada example.com", "Please provide a valid email address"),
        ],
    )
    def test_validate_email(self, email, expected):
        assert validate_email(email) == expected

    def test_normalize(self):
        assert normalize_email("  Ada@Example.COM ") == "ada@example.com"

    def test_is_email_distinguishes_username(self):
        assert is_email("ada@example.com")
        assert not is_email("ada")


@pytest.mark.parametrize(
    "username, expected",
    [
        ("ada_99", None),
        ("", "Username is required"),
        ("ad", "Username must be between 3 and 20 characters"),
        ("a" * 21, "Username must be between 3 and 20 characters"),
        ("ada-lovelace", "Username can only contain letters, numbers, and underscores"),
    ],
    ids=["valid", "empty", "short", "long", "bad_chars"],
)
def test_validate_username(username, expected):
    assert validate_username(username) == expected


@pytest.mark.parametrize(
    "first, last, expected",
    [
        ("Ada", "Lovelace", None),
        ("", "Lovelace", "First name is required"),
        ("Ada", "  ", "Last name is required"),
        ("A" * 25, "B" * 24, None),
        ("A" * 25, "B" * 25, "Name cannot exceed 50 characters"),
    ],
)
def test_validate_name(first, last, expected):
    assert validate_name(first, last) == expected


class TestAge:
    @pytest.mark.parametrize("age", [13, 120, "42", 42.0])
    def test_accepted(self, age):
        assert validate_age(age) is None

    @pytest.mark.parametrize("age", [10, 12, 121, "abc", 12.5, True])
    def test_out_of_range(self, age):
        assert validate_age(age) == "Age must be between 13 and 120"

    @pytest.mark.parametrize("age", [None, ""])
    def test_missing(self, age):
        assert validate_age(age) == "Age is required"

    def test_parse_age(self):
        assert parse_age(" 30 ") == 30
        assert parse_age("thirty") is None


@pytest.mark.parametrize(
    "otp, expected",
    [
        ("012345", None),
        ("", "OTP is required"),
        ("12345", "OTP must be a 6-digit number"),
        ("12a456", "OTP must be a 6-digit number"),
    ],
)
def test_validate_otp_format(otp, expected):
    assert validate_otp_format(otp) == expected


class TestPasswordRules:
    def test_length_rule_message_uses_label(self):
        assert (
            validate_password_length("short", "New password")
            == "New password must be at least 8 characters long"
        )

    def test_length_rule_accepts_any_composition(self):
        assert validate_password_length("alllowercase") is None

    @pytest.mark.parametrize(
        "password, missing",
        [
            ("Valid-Pass-1", []),
            ("nouppercase1", ["At least one uppercase letter"]),
            ("NOLOWERCASE1", ["At least one lowercase letter"]),
            ("NoDigitsHere", ["At least one number"]),
            ("Ab1", ["At least 8 characters"]),
        ],
    )
    def test_policy(self, password, missing):
        assert password_policy_violations(password) == missing


# ── generators ────────────────────────────────────────────────────────────────


class TestGenerators:
    def test_otp_is_six_digits(self):
        code = generate_otp_code()
        assert len(code) == 6
        assert code.isdigit()

    def test_otp_length_configurable(self):
        assert len(generate_otp_code(8)) == 8

    def test_otp_codes_vary(self):
        assert len({generate_otp_code() for _ in range(50)}) > 1

    def test_username_candidates(self):
        assert list(islice(username_candidates("Grace.Hopper@navy.mil"), 3)) == [
            "grace_hopper",
            "grace_hopper1",
            "grace_hopper2",
        ]

    def test_username_candidates_padded_and_truncated(self):
        assert next(username_candidates("x@example.com")) == "x__"
        assert len(next(username_candidates("a" * 40 + "@example.com"))) == 16


# ── crypto ────────────────────────────────────────────────────────────────────


class TestCrypto:
    def test_password_round_trip(self):
        hashed = hash_password("Secret-123")
        assert hashed != "Secret-123"
        assert verify_password("Secret-123", hashed)
        assert not verify_password("Secret-124", hashed)

    @pytest.mark.parametrize("stored", [None, "", "not-an-argon2-hash"])
    def test_verify_without_usable_hash(self, stored):
        assert verify_password("anything", stored) is False

    def test_hash_code_is_sha256(self):
        assert hash_code("123456") == hashlib.sha256(b"123456").hexdigest()

    def test_code_matches(self):
        digest = hash_code("123456")
        assert code_matches("123456", digest)
        assert not code_matches("654321", digest)


# ── datetime_utils ────────────────────────────────────────────────────────────


class TestEnsureAware:
    def test_naive_treated_as_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert ensure_aware(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_converts_other_zones(self):
        plus_two = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert ensure_aware(plus_two).hour == 12

    def test_none(self):
        assert ensure_aware(None) is None


# ── logging ───────────────────────────────────────────────────────────────────


class TestLogging:
    def test_redacts_sensitive_keys(self):
        event = {
            "event": "login_failed",
            "password": "hunter2",
            "new_password": "x",
            "access_token": "abc",
            "code": "123456",
            "error_code": "locked",
            "user_id": "42",
        }
        out = app_logging.redact_sensitive_fields(None, "info", event)
        assert out["password"] == "***REDACTED***"
        assert out["new_password"] == "***REDACTED***"
        assert out["access_token"] == "***REDACTED***"
        assert out["code"] == "***REDACTED***"
        assert out["error_code"] == "locked"
        assert out["user_id"] == "42"

    def test_hash_ip_only_in_production(self, monkeypatch):
        monkeypatch.setitem(app_logging._state, "production", False)
        assert app_logging.hash_ip("1.2.3.4") == "1.2.3.4"
        monkeypatch.setitem(app_logging._state, "production", True)
        hashed = app_logging.hash_ip("1.2.3.4")
        assert hashed != "1.2.3.4"
        assert len(hashed) == 16
        assert app_logging.hash_ip(None) is None
