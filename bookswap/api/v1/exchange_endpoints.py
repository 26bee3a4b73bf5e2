"""
API endpoints for book exchange requests.

This module defines the FastAPI routes of the exchange workflow. It
handles HTTP concerns and delegates to the ExchangeService; domain errors
are rendered by the handlers in errors.py.
"""

from fastapi import APIRouter, Body, Depends, Query, status

from bookswap.domain.services import ExchangeService
from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import (
    domain_exchange_page_to_api,
    domain_exchange_to_api,
    to_page_request,
)
from bookswap.api.v1.dependencies import get_current_username, get_exchange_service

router = APIRouter(prefix="/exchanges")


@router.post("", response_model=api.ExchangeCreated, status_code=status.HTTP_201_CREATED)
def create_exchange_request(
    request: api.ExchangeCreateRequest,
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.ExchangeCreated:
    """
    Request a book from its owner.

    The book is reserved for the caller until the owner rejects the
    request or either side cancels it.

    Raises:
        404: Book not found
        409: Book is not available
        400: Caller owns the book
    """
    exchange = service.create_exchange_request(
        book_id=request.book_id,
        requester_username=username,
        message=request.message,
    )
    return api.ExchangeCreated(exchange_id=exchange.id, status=exchange.status.value)


@router.get("/my", response_model=api.ExchangePage)
def get_my_exchanges(
    page: int = Query(default=0),
    size: int = Query(default=10),
    sort_by: str = Query(default="created_at"),
    direction: str = Query(default="desc"),
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.ExchangePage:
    """Exchanges where the caller is the owner or the requester."""
    page_request = to_page_request(page, size, sort_by, direction)
    return domain_exchange_page_to_api(service.get_user_exchanges(username, page_request))


@router.get("/incoming", response_model=list[api.Exchange])
def get_incoming_requests(
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> list[api.Exchange]:
    """Pending requests for the caller's books."""
    return [domain_exchange_to_api(e) for e in service.get_incoming_requests(username)]


@router.get("/outgoing", response_model=list[api.Exchange])
def get_outgoing_requests(
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> list[api.Exchange]:
    """Requests the caller has made, in any status."""
    return [domain_exchange_to_api(e) for e in service.get_outgoing_requests(username)]


@router.get("/{exchange_id}", response_model=api.Exchange)
def get_exchange(
    exchange_id: int,
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.Exchange:
    return domain_exchange_to_api(service.get_exchange(exchange_id, username))


@router.put("/{exchange_id}/approve", response_model=api.Exchange)
def approve_exchange(
    exchange_id: int,
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.Exchange:
    """Owner accepts a pending request."""
    return domain_exchange_to_api(service.approve(exchange_id, username))


@router.put("/{exchange_id}/complete", response_model=api.Exchange)
def complete_exchange(
    exchange_id: int,
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.Exchange:
    """Owner confirms an accepted exchange took place; the book becomes EXCHANGED."""
    return domain_exchange_to_api(service.complete(exchange_id, username))


@router.put("/{exchange_id}/reject", response_model=api.Ack)
def reject_exchange(
    exchange_id: int,
    request: api.RejectRequest | None = Body(default=None),
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.Ack:
    """Owner turns down a request; the book becomes AVAILABLE again."""
    reason = request.reason if request is not None else None
    service.reject(exchange_id, username, reason=reason)
    return api.Ack(message=f"Exchange {exchange_id} rejected")


@router.put("/{exchange_id}/cancel", response_model=api.Exchange)
def cancel_exchange(
    exchange_id: int,
    username: str = Depends(get_current_username),
    service: ExchangeService = Depends(get_exchange_service),
) -> api.Exchange:
    """Either participant withdraws an active exchange."""
    return domain_exchange_to_api(service.cancel(exchange_id, username))
