"""Tests for registration, login and profile handlers."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

import auth_service
import models
from errors import ConflictError, NotFoundError, UnauthorizedError
from schemas import AuthContext, LoginInput, RegisterInput, UpdateProfileInput
from security import verify_password
from tests.helpers import ctx_for


def _register_input(email: str = "test@example.com") -> RegisterInput:
    return RegisterInput(
        email=email, password="password123", first_name="John", last_name="Doe"
    )


class TestRegister:
    def test_creates_customer_with_hashed_password(self, session) -> None:
        user = auth_service.register(session, _register_input())

        assert user.id is not None
        assert user.email == "test@example.com"
        assert user.role == "customer"
        assert user.password_hash != "password123"
        assert verify_password("password123", user.password_hash)
        assert session.get(models.User, user.id) is not None

    def test_duplicate_email_conflicts(self, session) -> None:
        auth_service.register(session, _register_input())

        with pytest.raises(ConflictError, match="Email already registered"):
            auth_service.register(session, _register_input())


class TestLogin:
    def test_returns_registered_user(self, session) -> None:
        registered = auth_service.register(session, _register_input())

        user = auth_service.login(
            session, LoginInput(email="test@example.com", password="password123")
        )

        assert user.id == registered.id

    def test_wrong_password(self, session) -> None:
        auth_service.register(session, _register_input())

        with pytest.raises(UnauthorizedError, match="Invalid email or password"):
            auth_service.login(session, LoginInput(email="test@example.com", password="nope"))

    def test_unknown_email(self, session) -> None:
        with pytest.raises(UnauthorizedError, match="Invalid email or password"):
            auth_service.login(
                session, LoginInput(email="ghost@example.com", password="password123")
            )

    def test_email_match_is_case_sensitive(self, session) -> None:
        auth_service.register(session, _register_input("test@example.com"))

        with pytest.raises(UnauthorizedError):
            auth_service.login(
                session, LoginInput(email="Test@example.com", password="password123")
            )

    def test_email_domain_case_is_kept(self, session) -> None:
        user = auth_service.register(session, _register_input("test@Example.com"))

        assert user.email == "test@Example.com"
        with pytest.raises(UnauthorizedError):
            auth_service.login(
                session, LoginInput(email="test@example.com", password="password123")
            )

    def test_malformed_email_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _register_input("not-an-email")


class TestProfile:
    def test_get_profile(self, session, make_user) -> None:
        user = make_user()

        assert auth_service.get_profile(session, ctx_for(user)).id == user.id

    def test_get_profile_missing_user(self, session) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            auth_service.get_profile(session, AuthContext(user_id=999, role="customer"))

    def test_partial_update_keeps_other_fields(self, session, make_user) -> None:
        user = make_user(email="keep@example.com")
        before = user.updated_at

        updated = auth_service.update_profile(
            session, UpdateProfileInput(first_name="Jane"), ctx_for(user)
        )

        assert updated.first_name == "Jane"
        assert updated.last_name == user.last_name
        assert updated.email == "keep@example.com"
        assert updated.updated_at >= before

    def test_email_owned_by_another_user_conflicts(self, session, make_user) -> None:
        make_user(email="taken@example.com")
        user = make_user(email="mine@example.com")

        with pytest.raises(ConflictError, match="Email already exists"):
            auth_service.update_profile(
                session, UpdateProfileInput(email="taken@example.com"), ctx_for(user)
            )

    def test_keeping_own_email_is_allowed(self, session, make_user) -> None:
        user = make_user(email="mine@example.com")

        updated = auth_service.update_profile(
            session,
            UpdateProfileInput(email="mine@example.com", last_name="Smith"),
            ctx_for(user),
        )

        assert updated.email == "mine@example.com"
        assert updated.last_name == "Smith"

    def test_update_missing_user(self, session) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            auth_service.update_profile(
                session,
                UpdateProfileInput(first_name="X"),
                AuthContext(user_id=999, role="customer"),
            )
