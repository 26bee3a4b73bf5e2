"""
Converters between domain entities/value objects and API schemas.

This module centralizes all conversion logic between the domain layer
and the API layer, maintaining clean separation of concerns.
"""

from dataclasses import asdict
from enum import Enum
from typing import Any, Optional

from bookswap.domain import entities as domain
from bookswap.domain import value_objects as domain_vo
from bookswap.domain.exceptions import InvalidArgumentError
from bookswap.api.v1 import schemas as api


def _plain(value: Any) -> Any:
    """Replace enum members by their values, recursively (asdict keeps them)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def domain_book_to_api(book: domain.Book) -> api.Book:
    """
    Convert a domain Book entity to an API Book model.

    Args:
        book: Domain Book entity

    Returns:
        API Book model
    """
    book_dict = _plain(asdict(book))
    return api.Book(**book_dict)


def domain_book_page_to_api(page: domain_vo.Page) -> api.BookPage:
    return api.BookPage(
        items=[domain_book_to_api(book) for book in page.items],
        total=page.total,
        page=page.page,
        size=page.size,
        total_pages=page.total_pages,
        has_next=page.has_next,
    )


def domain_book_info_to_api(info: domain_vo.BookInfo) -> api.BookInfo:
    return api.BookInfo(
        **asdict(info),
        publication_year=info.publication_year,
    )


def api_condition_to_domain(
    condition: Optional[api.BookCondition],
) -> Optional[domain_vo.BookCondition]:
    if condition is None:
        return None
    try:
        return domain_vo.BookCondition(
            rating=condition.rating,
            cover=domain_vo.ConditionGrade(condition.cover),
            pages=domain_vo.ConditionGrade(condition.pages),
            has_damage=condition.has_damage,
            damage_description=condition.damage_description,
            is_complete=condition.is_complete,
            has_highlighting=condition.has_highlighting,
            has_notes=condition.has_notes,
            description=condition.description,
        )
    except ValueError as e:
        raise InvalidArgumentError(str(e), "VALIDATION_ERROR") from e


def api_book_request_to_domain(
    request: api.BookCreateRequest | api.BookUpdateRequest,
) -> domain_vo.BookDetails:
    """
    Convert a create/update request body into domain BookDetails.

    Fields the client omitted stay None, which the update path reads as
    "unchanged".
    """
    values = request.model_dump(exclude={"condition"})
    return domain_vo.BookDetails(
        **values,
        condition=api_condition_to_domain(request.condition),
    )


def domain_exchange_to_api(exchange: domain.Exchange) -> api.Exchange:
    return api.Exchange(**_plain(asdict(exchange)))


def domain_exchange_page_to_api(page: domain_vo.Page) -> api.ExchangePage:
    return api.ExchangePage(
        items=[domain_exchange_to_api(exchange) for exchange in page.items],
        total=page.total,
        page=page.page,
        size=page.size,
        total_pages=page.total_pages,
        has_next=page.has_next,
    )


def domain_review_to_api(review: domain.Review) -> api.Review:
    return api.Review(**asdict(review), stars=review.get_star_rating())


def domain_review_page_to_api(page: domain_vo.Page) -> api.ReviewPage:
    return api.ReviewPage(
        items=[domain_review_to_api(review) for review in page.items],
        total=page.total,
        page=page.page,
        size=page.size,
        total_pages=page.total_pages,
        has_next=page.has_next,
    )


def domain_user_to_api(user: domain.User) -> api.User:
    return api.User(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=user.get_full_name(),
        city=user.city,
        phone_number=user.phone_number,
        bio=user.bio,
        role=user.role.value,
        enabled=user.enabled,
        created_at=user.created_at,
    )


def to_page_request(
    page: int,
    size: int,
    sort_by: str,
    direction: str,
) -> domain_vo.PageRequest:
    """
    Build a domain PageRequest from query parameters.

    Raises:
        InvalidArgumentError: If the paging parameters are out of range
    """
    try:
        return domain_vo.PageRequest(
            page=page,
            size=size,
            sort_by=sort_by,
            direction=direction.lower(),
        )
    except ValueError as e:
        raise InvalidArgumentError(str(e), "INVALID_PAGE_REQUEST") from e
