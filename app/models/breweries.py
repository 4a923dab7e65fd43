from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.users import UserAuth

DEFAULT_IMAGE = "breweries/default.jpg"


brewery_beer = Table(
    "brewery_beer",
    Base.metadata,
    Column("brewery_id", Integer, ForeignKey("breweries.id", ondelete="CASCADE"), primary_key=True),
    Column("beer_id", Integer, ForeignKey("beers.id", ondelete="CASCADE"), primary_key=True),
)

brewery_favorites = Table(
    "brewery_favorites",
    Base.metadata,
    Column("brewery_id", Integer, ForeignKey("breweries.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users_auth.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, nullable=False, default=datetime.utcnow),
)


class Brewery(Base):
    __tablename__ = "breweries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users_auth.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Name uniqueness is checked when a listing is created, not by the table.
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False)

    latitude: Mapped[Decimal] = mapped_column(Numeric(10, 8), nullable=False)
    longitude: Mapped[Decimal] = mapped_column(Numeric(11, 8), nullable=False)

    founded_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    visitable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    image: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner: Mapped[UserAuth | None] = relationship()
    beers: Mapped[list["Beer"]] = relationship(secondary=brewery_beer, order_by="Beer.name")
    favorited_by: Mapped[list[UserAuth]] = relationship(secondary=brewery_favorites, viewonly=True)

    @property
    def image_path(self) -> str:
        return self.image or DEFAULT_IMAGE

    def is_owned_by(self, user_id: str | None) -> bool:
        return user_id is not None and self.user_id == user_id


class Beer(Base):
    __tablename__ = "beers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    style: Mapped[str | None] = mapped_column(String(120), nullable=True)
    abv: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    breweries: Mapped[list[Brewery]] = relationship(secondary=brewery_beer, viewonly=True)
