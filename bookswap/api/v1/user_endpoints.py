"""
API endpoints for marketplace members.
"""

from fastapi import APIRouter, Depends, status

from bookswap.domain.entities import Role
from bookswap.domain.services import UserService
from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import domain_user_to_api
from bookswap.api.v1.dependencies import get_current_username, get_user_service

router = APIRouter(prefix="/users")


@router.post("", response_model=api.User, status_code=status.HTTP_201_CREATED)
def register_user(
    request: api.UserRegisterRequest,
    service: UserService = Depends(get_user_service),
) -> api.User:
    """
    Register a new member.

    Raises:
        400: One or more fields are invalid (see "fields" in the body)
        409: Username or email already taken
    """
    user = service.register(**request.model_dump())
    return domain_user_to_api(user)


@router.get("/me", response_model=api.User)
def get_me(
    username: str = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
) -> api.User:
    return domain_user_to_api(service.get_user(username))


@router.put("/me", response_model=api.User)
def update_me(
    request: api.UserUpdateRequest,
    username: str = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
) -> api.User:
    """Update the caller's own profile. Omitted fields are unchanged."""
    user = service.update_profile(username, **request.model_dump())
    return domain_user_to_api(user)


@router.get("/{username}", response_model=api.User)
def get_user(
    username: str,
    service: UserService = Depends(get_user_service),
) -> api.User:
    return domain_user_to_api(service.get_user(username))


@router.put("/{username}/role", response_model=api.User)
def assign_role(
    username: str,
    request: api.RoleRequest,
    caller: str = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
) -> api.User:
    """Admins grant USER, MODERATOR or ADMIN to another member."""
    user = service.assign_role(caller, username, Role(request.role))
    return domain_user_to_api(user)


@router.put("/{username}/enable", response_model=api.User)
def enable_user(
    username: str,
    caller: str = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
) -> api.User:
    return domain_user_to_api(service.enable_user(caller, username))


@router.put("/{username}/disable", response_model=api.User)
def disable_user(
    username: str,
    caller: str = Depends(get_current_username),
    service: UserService = Depends(get_user_service),
) -> api.User:
    """
    Admins lock a member out of every write operation.

    Raises:
        403: Caller is not an enabled ADMIN
        404: User not found
    """
    return domain_user_to_api(service.disable_user(caller, username))
