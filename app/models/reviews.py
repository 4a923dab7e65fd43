from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Review(Base):
    __tablename__ = "reviews"

    # Polymorphic target: (reviewable_type, reviewable_id), e.g. ("brewery", 12).
    # No FK on reviewable_id since it points at different tables.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reviewable_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reviewable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users_auth.id", ondelete="SET NULL"), nullable=True, index=True
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )


Index("ix_reviews_reviewable", Review.reviewable_type, Review.reviewable_id, Review.created_at)
