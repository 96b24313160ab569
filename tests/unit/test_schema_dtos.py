"""Unit tests for auth request and response DTOs."""

from __future__ import annotations

import pytest
from bson import ObjectId

from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SetPasswordRequest,
)
from schemas.dto.responses.auth import RegisterResponse, UserPublic
from schemas.dto.responses.common import ErrorResponse
from schemas.models.user import UserDoc


class TestRequests:
    def test_register_accepts_camel_case(self):
        req = RegisterRequest.model_validate(
            {
                "firstName": "Ada",
                "lastName": "Lovelace",
                "username": "ada",
                "email": "ada@example.com",
                "password": "secret-pass",
                "age": "36",
            }
        )
        assert req.first_name == "Ada"
        assert req.last_name == "Lovelace"
        assert req.age == "36"

    def test_register_accepts_snake_case(self):
        assert RegisterRequest(first_name="Ada").first_name == "Ada"

    def test_fields_are_optional(self):
        req = LoginRequest.model_validate({})
        assert req.identifier is None
        assert req.password is None

    @pytest.mark.parametrize(
        "model, payload, attr",
        [
            (ResetPasswordRequest, {"newPassword": "X"}, "new_password"),
            (SetPasswordRequest, {"newPassword": "X"}, "new_password"),
            (ChangePasswordRequest, {"currentPassword": "X"}, "current_password"),
        ],
    )
    def test_password_aliases(self, model, payload, attr):
        assert getattr(model.model_validate(payload), attr) == "X"


class TestResponses:
    def test_user_public_hides_credentials(self):
        user = UserDoc(
            id=ObjectId(),
            name="Ada Lovelace",
            username="ada",
            email="ada@example.com",
            password_hash="secret-hash",
            login_attempts=3,
        )
        public = UserPublic.from_doc(user).model_dump()
        assert public["id"] == str(user.id)
        assert set(public) == {"id", "name", "email", "username", "age", "about"}

    def test_register_response_serializes_camel_case(self):
        body = RegisterResponse(
            message="ok", state="pending_verification", email="a@b.co", verification_sent=False
        ).model_dump(by_alias=True)
        assert body["verificationSent"] is False

    def test_error_response_shape(self):
        body = ErrorResponse(message="nope", code="locked").model_dump(exclude_none=True)
        assert body == {"success": False, "message": "nope", "code": "locked"}
