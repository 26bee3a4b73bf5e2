"""
API endpoints for book reviews and ratings.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from bookswap.domain.services import ReviewService
from bookswap.api.v1 import schemas as api
from bookswap.api.v1.converters import (
    domain_review_page_to_api,
    domain_review_to_api,
    to_page_request,
)
from bookswap.api.v1.dependencies import get_current_username, get_review_service

router = APIRouter()


@router.get("/books/{book_id}/reviews", response_model=api.ReviewPage)
def get_book_reviews(
    book_id: int,
    page: int = 0,
    size: int = 10,
    sort_by: str = "created_at",
    direction: str = "desc",
    service: ReviewService = Depends(get_review_service),
) -> api.ReviewPage:
    """Approved reviews of a book."""
    page_request = to_page_request(page, size, sort_by, direction)
    return domain_review_page_to_api(service.get_book_reviews(book_id, page_request))


@router.post(
    "/books/{book_id}/reviews",
    response_model=api.Review,
    status_code=status.HTTP_201_CREATED,
)
def create_review(
    book_id: int,
    request: api.ReviewRequest,
    username: str = Depends(get_current_username),
    service: ReviewService = Depends(get_review_service),
) -> api.Review:
    """Review another user's book. The review waits for moderation."""
    review = service.create_review(
        book_id,
        username,
        rating=request.rating,
        content=request.content,
        title=request.title,
    )
    return domain_review_to_api(review)


@router.get("/books/{book_id}/rating", response_model=api.RatingStats)
def get_book_rating(
    book_id: int,
    service: ReviewService = Depends(get_review_service),
) -> api.RatingStats:
    stats = service.get_rating_stats(book_id)
    return api.RatingStats(average=stats.average, count=stats.count)


@router.get("/reviews/latest", response_model=list[api.Review])
def get_latest_reviews(
    limit: int = Query(default=10),
    service: ReviewService = Depends(get_review_service),
) -> list[api.Review]:
    return [domain_review_to_api(r) for r in service.get_latest_reviews(limit)]


@router.put("/reviews/{review_id}", response_model=api.Review)
def update_review(
    review_id: int,
    request: api.ReviewRequest,
    username: str = Depends(get_current_username),
    service: ReviewService = Depends(get_review_service),
) -> api.Review:
    """Author rewrites a review; it goes back to moderation."""
    review = service.update_review(
        review_id,
        username,
        rating=request.rating,
        content=request.content,
        title=request.title,
    )
    return domain_review_to_api(review)


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: int,
    username: str = Depends(get_current_username),
    service: ReviewService = Depends(get_review_service),
) -> Response:
    service.delete_review(review_id, username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/reviews/{review_id}/approve", response_model=api.Review)
def approve_review(
    review_id: int,
    username: str = Depends(get_current_username),
    service: ReviewService = Depends(get_review_service),
) -> api.Review:
    """Admins and moderators publish a review."""
    return domain_review_to_api(service.approve_review(review_id, username))


@router.get("/users/{username}/reviews", response_model=list[api.Review])
def get_user_reviews(
    username: str,
    service: ReviewService = Depends(get_review_service),
) -> list[api.Review]:
    return [domain_review_to_api(r) for r in service.get_user_reviews(username)]
