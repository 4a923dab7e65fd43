from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.deps import get_current_user
from app.db.session import get_db
from app.models.enums import ReviewableType
from app.models.reviews import Review
from app.models.users import UserAuth
from app.schemas.reviews import ReviewCreate, ReviewListResponse, ReviewResponse
from app.services.breweries import resolve_brewery
from app.services.ratings import average_rating

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/breweries/{identifier}/reviews", tags=["reviews"])


def _to_review_response(r: Review) -> ReviewResponse:
    return ReviewResponse(
        id=r.id,
        reviewable_type=r.reviewable_type,
        reviewable_id=r.reviewable_id,
        user_id=r.user_id,
        rating=r.rating,
        text=r.text,
        created_at=r.created_at,
    )


@router.post("", response_model=ReviewResponse, status_code=201)
def create_review(
    identifier: str,
    payload: ReviewCreate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ReviewResponse:
    brewery = resolve_brewery(db, identifier)

    review = Review(
        reviewable_type=ReviewableType.brewery.value,
        reviewable_id=brewery.id,
        user_id=current.id,
        rating=payload.rating,
        text=(payload.text or "").strip() or None,
    )
    db.add(review)
    db.commit()
    db.refresh(review)
    logger.info("Review %s added to brewery %s by %s", review.id, brewery.id, current.id)

    return _to_review_response(review)


@router.get("", response_model=ReviewListResponse)
def list_reviews(
    identifier: str,
    db: Session = Depends(get_db),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> ReviewListResponse:
    brewery = resolve_brewery(db, identifier)

    stmt = (
        select(Review)
        .where(
            Review.reviewable_type == ReviewableType.brewery.value,
            Review.reviewable_id == brewery.id,
        )
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    total = db.scalar(select(func.count()).select_from(stmt.subquery()))
    items = list(db.scalars(stmt.limit(limit).offset(offset)).all())
    return ReviewListResponse(
        items=[_to_review_response(r) for r in items],
        total=int(total or 0),
        avg_rating=average_rating(db, reviewable_id=brewery.id),
    )
