"""
Tests for UserService.

Test Pattern: AAA (Arrange-Act-Assert)
"""

import pytest

from bookswap.domain.entities import Role
from bookswap.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from bookswap.domain.services import UserService
from bookswap.infrastructure.db.sqlite_user_repository import SqliteUserRepository


@pytest.fixture
def service(uow_factory, clock):
    return UserService(uow_factory, clock=clock)


def _register(service, username="dana", email="dana@example.com", **overrides):
    fields = {"first_name": "Dana", "last_name": "Scully", "city": "Sevilla"}
    fields.update(overrides)
    return service.register(username, email, **fields)


class TestRegister:
    """Tests for register()."""

    def test_registers_plain_user(self, service, clock):
        user = _register(service, bio="Reads everything")

        assert user.id is not None
        assert user.role == Role.USER
        assert user.enabled is True
        assert user.bio == "Reads everything"
        assert user.created_at == clock.calls[-1]
        assert service.get_user("dana").email == "dana@example.com"

    def test_names_are_trimmed(self, service):
        user = _register(service, first_name="  Dana ", city=" Sevilla")

        assert user.first_name == "Dana"
        assert user.city == "Sevilla"

    def test_reports_all_invalid_fields(self, service):
        with pytest.raises(InvalidArgumentError) as exc_info:
            service.register("d", "bad", first_name="", last_name="Scully", city="")

        error = exc_info.value
        assert error.code == "VALIDATION_ERROR"
        assert set(error.fields) == {"username", "email", "first_name", "city"}

    def test_duplicate_username(self, service, alice):
        with pytest.raises(ConflictError) as exc_info:
            _register(service, username="alice", email="other@example.com")

        assert exc_info.value.code == "USERNAME_TAKEN"

    def test_duplicate_email(self, service, alice):
        with pytest.raises(ConflictError) as exc_info:
            _register(service, email="alice@example.com")

        assert exc_info.value.code == "EMAIL_TAKEN"


class TestGetUser:
    """Tests for get_user()."""

    def test_unknown_user(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get_user("nobody")

        assert exc_info.value.code == "USER_NOT_FOUND"


class TestUpdateProfile:
    """Tests for update_profile()."""

    def test_updates_only_given_fields(self, service, alice):
        updated = service.update_profile("alice", city="Bilbao", bio="Sci-fi fan")

        assert updated.city == "Bilbao"
        assert updated.bio == "Sci-fi fan"
        assert updated.email == alice.email
        assert service.get_user("alice").city == "Bilbao"

    def test_blank_name_is_rejected(self, service, alice):
        with pytest.raises(InvalidArgumentError) as exc_info:
            service.update_profile("alice", first_name="   ")

        assert "first_name" in exc_info.value.fields

    def test_invalid_email(self, service, alice):
        with pytest.raises(InvalidArgumentError):
            service.update_profile("alice", email="nope")

    def test_email_of_another_user(self, service, alice, bob):
        with pytest.raises(ConflictError):
            service.update_profile("alice", email="bob@example.com")

    def test_keeping_own_email_is_allowed(self, service, alice):
        updated = service.update_profile("alice", email="alice@example.com", last_name="Liddell")

        assert updated.last_name == "Liddell"

    def test_email_claimed_concurrently(self, service, monkeypatch, alice, bob):
        # Another writer took the address after the existence check
        monkeypatch.setattr(SqliteUserRepository, "exists_by_email", lambda self, email: False)

        with pytest.raises(ConflictError) as exc_info:
            service.update_profile("alice", email="bob@example.com")

        assert exc_info.value.code == "EMAIL_TAKEN"
        assert service.get_user("alice").email == "alice@example.com"

    def test_disabled_user_cannot_edit_profile(self, service, make_user):
        make_user("ghost", enabled=False)

        with pytest.raises(ForbiddenError) as exc_info:
            service.update_profile("ghost", city="Bilbao")

        assert exc_info.value.code == "ACCOUNT_DISABLED"
        assert service.get_user("ghost").city == "Madrid"


class TestAssignRole:
    """Tests for assign_role()."""

    def test_admin_grants_moderator(self, service, make_user, bob):
        make_user("root", role=Role.ADMIN)

        user = service.assign_role("root", "bob", Role.MODERATOR)

        assert user.role == Role.MODERATOR
        assert service.get_user("bob").is_moderator()

    def test_moderator_cannot_grant_roles(self, service, make_user, bob):
        make_user("mod", role=Role.MODERATOR)

        with pytest.raises(ForbiddenError):
            service.assign_role("mod", "bob", Role.ADMIN)

        assert service.get_user("bob").role == Role.USER

    def test_unknown_target(self, service, make_user):
        make_user("root", role=Role.ADMIN)

        with pytest.raises(NotFoundError):
            service.assign_role("root", "ghost", Role.MODERATOR)

    def test_disabled_admin_cannot_grant_roles(self, service, make_user, bob):
        make_user("root", role=Role.ADMIN, enabled=False)

        with pytest.raises(ForbiddenError) as exc_info:
            service.assign_role("root", "bob", Role.MODERATOR)

        assert exc_info.value.code == "ACCOUNT_DISABLED"
        assert service.get_user("bob").role == Role.USER


class TestEnableDisable:
    """Tests for enable_user() and disable_user()."""

    def test_admin_disables_and_reenables(self, service, make_user, bob):
        make_user("root", role=Role.ADMIN)

        disabled = service.disable_user("root", "bob")

        assert disabled.enabled is False
        assert service.get_user("bob").enabled is False

        enabled = service.enable_user("root", "bob")

        assert enabled.enabled is True
        assert service.get_user("bob").enabled is True

    def test_disabled_user_is_locked_out_of_writes(self, service, make_user, bob):
        make_user("root", role=Role.ADMIN)
        service.disable_user("root", "bob")

        with pytest.raises(ForbiddenError):
            service.update_profile("bob", bio="Still here")

    def test_non_admin_cannot_disable(self, service, alice, bob):
        with pytest.raises(ForbiddenError):
            service.disable_user("alice", "bob")

        assert service.get_user("bob").enabled is True

    def test_unknown_target(self, service, make_user):
        make_user("root", role=Role.ADMIN)

        with pytest.raises(NotFoundError):
            service.enable_user("root", "ghost")
