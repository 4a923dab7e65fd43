from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.enums import ReviewableType
from app.models.reviews import Review


def rating_subquery(reviewable_type: ReviewableType = ReviewableType.brewery):
    """Per-target average rating, for joining into listing queries.

    Columns: ``reviewable_id``, ``avg_rating``, ``reviews_count``.
    """
    return (
        select(
            Review.reviewable_id.label("reviewable_id"),
            func.avg(Review.rating).label("avg_rating"),
            func.count(Review.id).label("reviews_count"),
        )
        .where(Review.reviewable_type == reviewable_type.value)
        .group_by(Review.reviewable_id)
        .subquery()
    )


def rating_stats(
    db: Session, *, reviewable_id: int, reviewable_type: ReviewableType = ReviewableType.brewery
) -> tuple[float, int]:
    """Return (average rating, review count); the average is 0 when there are no reviews."""

    stmt = select(func.count(Review.id), func.avg(Review.rating)).where(
        Review.reviewable_type == reviewable_type.value,
        Review.reviewable_id == reviewable_id,
    )
    cnt, avg = db.execute(stmt).one()
    return float(avg or 0.0), int(cnt or 0)


def average_rating(
    db: Session, *, reviewable_id: int, reviewable_type: ReviewableType = ReviewableType.brewery
) -> float:
    return rating_stats(db, reviewable_id=reviewable_id, reviewable_type=reviewable_type)[0]


def bulk_rating_stats(
    db: Session, ids: list[int], reviewable_type: ReviewableType = ReviewableType.brewery
) -> dict[int, tuple[float, int]]:
    if not ids:
        return {}
    stmt = (
        select(Review.reviewable_id, func.avg(Review.rating), func.count(Review.id))
        .where(Review.reviewable_type == reviewable_type.value, Review.reviewable_id.in_(ids))
        .group_by(Review.reviewable_id)
    )
    return {int(rid): (float(avg or 0.0), int(cnt)) for rid, avg, cnt in db.execute(stmt).all()}
