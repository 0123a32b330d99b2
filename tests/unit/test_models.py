"""Tests for record models."""

import pytest
from pydantic import ValidationError

from chatwire.core.models import AuthResult, Message, MessageCreate, Page, User, UserCreate


class TestUser:

    def test_parses_wire_format(self) -> None:
        user = User.model_validate({
            "id": 1,
            "email": "Alice@Example.com",
            "createdAt": "2024-01-01T10:00:00Z",
            "password": "never-exposed",
        })
        assert user.email == "alice@example.com"
        assert user.created_at.year == 2024
        assert not hasattr(user, "password")
        assert user.display_name == "alice"

    def test_rejects_invalid_email(self) -> None:
        with pytest.raises(ValidationError):
            User(id=1, email="not-an-email")

    def test_to_wire_uses_aliases(self) -> None:
        user = User.model_validate({"id": "a1", "email": "bob@example.com", "createdAt": "2024-01-01T00:00:00Z"})
        wire = user.to_wire()
        assert "createdAt" in wire
        assert "updatedAt" not in wire


class TestPayloads:

    def test_user_create_requires_password(self) -> None:
        with pytest.raises(ValidationError):
            UserCreate(email="bob@example.com", password="")

    def test_message_text_is_stripped(self) -> None:
        assert MessageCreate(text="  hello  ").text == "hello"

    def test_empty_message_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MessageCreate(text="   ")

    def test_message_with_embedded_user(self) -> None:
        message = Message.model_validate({
            "id": 7,
            "text": "hi",
            "userId": 1,
            "user": {"id": 1, "email": "alice@example.com"},
        })
        assert message.user_id == 1
        assert message.user.email == "alice@example.com"

    def test_auth_result(self) -> None:
        result = AuthResult.model_validate({
            "accessToken": "abc",
            "authentication": {"strategy": "local"},
            "user": {"id": 1, "email": "alice@example.com"},
        })
        assert result.access_token == "abc"
        assert result.user.id == 1


class TestPage:

    def test_from_paginated_result(self) -> None:
        page = Page.from_result(
            {"total": 12, "limit": 2, "skip": 4, "data": [{"id": 1, "email": "a@x.io"}, {"id": 2, "email": "b@x.io"}]},
            User,
        )
        assert page.total == 12
        assert page.skip == 4
        assert [u.id for u in page.data] == [1, 2]
        assert isinstance(page.data[0], User)

    def test_from_bare_list(self) -> None:
        page = Page.from_result([{"id": 1, "email": "a@x.io"}], User)
        assert page.total == 1
        assert page.limit == 1

    def test_unexpected_result(self) -> None:
        with pytest.raises(ValueError):
            Page.from_result("nope", User)
