"""
Domain service for marketplace members (the identity store).

Authentication is handled outside the domain: this service only manages
the profile and role of users that the authentication layer resolves by
username.
"""

from dataclasses import replace
from datetime import datetime, UTC
from typing import Callable, Optional
import logging

from bookswap.domain.entities import Role, User
from bookswap.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
)
from bookswap.domain.ports import UnitOfWork, UnitOfWorkFactory
from bookswap.domain.validation import MAX_NAME_LENGTH, is_valid_email, validate_registration
from bookswap.domain.value_objects import ValidationResult

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class UserService:
    """Registers users and maintains their profiles and roles."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    def register(
        self,
        username: str,
        email: str,
        first_name: str,
        last_name: str,
        city: str,
        phone_number: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        """
        Create a new member with role USER.

        Every field is validated before anything is written, and all
        failures are reported together.

        Raises:
            InvalidArgumentError: VALIDATION_ERROR with a per-field map
            ConflictError: USERNAME_TAKEN or EMAIL_TAKEN
        """
        logger.info(f"Registering new user '{username}'")

        result = validate_registration(username, email, first_name, last_name, city)
        self._raise_if_invalid(result)

        with self._uow_factory() as uow:
            if uow.users.exists_by_username(username):
                raise ConflictError(f"Username '{username}' is already taken", "USERNAME_TAKEN")
            if uow.users.exists_by_email(email):
                raise ConflictError(f"Email '{email}' is already registered", "EMAIL_TAKEN")

            now = self._clock()
            user = User(
                username=username,
                email=email,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                city=city.strip(),
                phone_number=phone_number,
                bio=bio,
                role=Role.USER,
                enabled=True,
                created_at=now,
                updated_at=now,
            )

            try:
                saved = uow.users.add(user)
            except ValueError as e:
                # Lost a registration race for the same username or email
                code = "EMAIL_TAKEN" if "email" in str(e) else "USERNAME_TAKEN"
                raise ConflictError(str(e), code) from e
            uow.commit()

        logger.info(f"User '{username}' registered with ID: {saved.id}")
        return saved

    def get_user(self, username: str) -> User:
        with self._uow_factory(read_only=True) as uow:
            return self._require_user(uow, username)

    def update_profile(
        self,
        username: str,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        city: Optional[str] = None,
        phone_number: Optional[str] = None,
        bio: Optional[str] = None,
    ) -> User:
        """
        Change the caller's own profile. Arguments left as None are unchanged.

        Raises:
            NotFoundError: User does not exist
            InvalidArgumentError: VALIDATION_ERROR with a per-field map
            ConflictError: New email belongs to another user (EMAIL_TAKEN)
            ForbiddenError: Account is disabled
        """
        result = ValidationResult()
        if email is not None and not is_valid_email(email):
            result.add_error("email", "Invalid email format")
        for field_name, value in (
            ("first_name", first_name),
            ("last_name", last_name),
            ("city", city),
        ):
            if value is None:
                continue
            if not value.strip():
                result.add_error(field_name, f"{field_name} cannot be blank")
            elif len(value) > MAX_NAME_LENGTH:
                result.add_error(
                    field_name, f"{field_name} cannot exceed {MAX_NAME_LENGTH} characters"
                )
        self._raise_if_invalid(result)

        changes = {
            name: value
            for name, value in (
                ("email", email),
                ("first_name", first_name),
                ("last_name", last_name),
                ("city", city),
                ("phone_number", phone_number),
                ("bio", bio),
            )
            if value is not None
        }

        with self._uow_factory() as uow:
            user = self._require_active_user(uow, username)
            if email is not None and email != user.email and uow.users.exists_by_email(email):
                raise ConflictError(f"Email '{email}' is already registered", "EMAIL_TAKEN")

            updated = replace(user, updated_at=self._clock(), **changes)
            try:
                uow.users.update(updated)
            except ValueError as e:
                # Lost a race for the same email
                raise ConflictError(str(e), "EMAIL_TAKEN") from e
            uow.commit()

        logger.info(f"Profile of '{username}' updated")
        return updated

    def assign_role(self, admin_username: str, username: str, role: Role) -> User:
        """
        Grant a role to a user. Only admins may do this.

        Raises:
            NotFoundError: Either user does not exist
            ForbiddenError: Caller is not an enabled ADMIN
        """
        with self._uow_factory() as uow:
            self._require_admin(uow, admin_username)

            user = self._require_user(uow, username)
            user.role = role
            user.updated_at = self._clock()
            uow.users.update(user)
            uow.commit()

        logger.info(f"Role {role.value} assigned to '{username}' by '{admin_username}'")
        return user

    def enable_user(self, admin_username: str, username: str) -> User:
        return self._set_enabled(admin_username, username, True)

    def disable_user(self, admin_username: str, username: str) -> User:
        """
        Lock a member out. A disabled user keeps their data but can no longer
        list books, request exchanges or write reviews.
        """
        return self._set_enabled(admin_username, username, False)

    def _set_enabled(self, admin_username: str, username: str, enabled: bool) -> User:
        with self._uow_factory() as uow:
            self._require_admin(uow, admin_username)

            user = self._require_user(uow, username)
            user.enabled = enabled
            user.updated_at = self._clock()
            uow.users.update(user)
            uow.commit()

        logger.info(
            f"User '{username}' {'enabled' if enabled else 'disabled'} by '{admin_username}'"
        )
        return user

    @classmethod
    def _require_admin(cls, uow: UnitOfWork, username: str) -> User:
        admin = cls._require_active_user(uow, username)
        if admin.role != Role.ADMIN:
            raise ForbiddenError()
        return admin

    @staticmethod
    def _raise_if_invalid(result: ValidationResult) -> None:
        if result.has_errors():
            raise InvalidArgumentError(
                result.first_error() or "Validation failed",
                "VALIDATION_ERROR",
                fields=result.errors,
            )

    @staticmethod
    def _require_user(uow: UnitOfWork, username: str) -> User:
        user = uow.users.get_by_username(username)
        if user is None:
            raise NotFoundError.user(username)
        return user

    @classmethod
    def _require_active_user(cls, uow: UnitOfWork, username: str) -> User:
        user = cls._require_user(uow, username)
        if not user.enabled:
            raise ForbiddenError.account_disabled(username)
        return user
