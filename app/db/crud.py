from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from app.models.breweries import Brewery
from app.services.ratings import rating_subquery

SORTABLE_COLUMNS = {
    "name": Brewery.name,
    "city": Brewery.city,
    "founded_year": Brewery.founded_year,
}
ORDER_DIRECTIONS = ("asc", "desc")


@dataclass
class Page:
    items: list[Any]
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(1, -(-self.total // self.per_page))


def paginate(db: Session, stmt: Select, *, page: int, per_page: int) -> Page:
    page = max(1, int(page))
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    items = list(db.scalars(stmt.limit(per_page).offset((page - 1) * per_page)).unique().all())
    return Page(items=items, total=int(total or 0), page=page, per_page=per_page)


def _like(value: str) -> str:
    return f"%{value.strip().lower()}%"


def filter_breweries(filters: dict[str, Any], stmt: Select | None = None) -> Select:
    """Apply listing filters and ordering to a brewery query.

    Recognised keys: ``name``, ``city`` (substring), ``visitable``, ``user_id``
    (exact), ``year_min``/``year_max`` (inclusive bounds on founded_year),
    ``order_by`` and ``order_direction``. Empty strings and None are ignored.
    """
    if stmt is None:
        stmt = select(Brewery)

    name = filters.get("name")
    if name:
        stmt = stmt.where(func.lower(Brewery.name).like(_like(name)))

    city = filters.get("city")
    if city:
        stmt = stmt.where(func.lower(Brewery.city).like(_like(city)))

    if filters.get("visitable") is not None:
        stmt = stmt.where(Brewery.visitable == bool(filters["visitable"]))

    year_min = filters.get("year_min")
    year_max = filters.get("year_max")
    if year_min and year_max:
        stmt = stmt.where(Brewery.founded_year.between(int(year_min), int(year_max)))
    elif year_min:
        stmt = stmt.where(Brewery.founded_year >= int(year_min))
    elif year_max:
        stmt = stmt.where(Brewery.founded_year <= int(year_max))

    if filters.get("user_id"):
        stmt = stmt.where(Brewery.user_id == filters["user_id"])

    order_by = filters.get("order_by") or "name"
    direction = (filters.get("order_direction") or "asc").lower()
    if direction not in ORDER_DIRECTIONS:
        raise ValueError(f"order_direction must be one of {ORDER_DIRECTIONS}, got {direction!r}")

    if order_by == "rating":
        ratings = rating_subquery()
        avg_col = func.coalesce(ratings.c.avg_rating, 0)
        stmt = stmt.outerjoin(ratings, ratings.c.reviewable_id == Brewery.id)
        stmt = stmt.order_by(avg_col.desc() if direction == "desc" else avg_col.asc())
    elif order_by in SORTABLE_COLUMNS:
        col = SORTABLE_COLUMNS[order_by]
        stmt = stmt.order_by(col.desc() if direction == "desc" else col.asc())
    else:
        stmt = stmt.order_by(Brewery.name.asc())

    return stmt.order_by(Brewery.id.asc())


def search_breweries(location: str | None = None, search: str | None = None) -> Select:
    """Public listing query: location over city/location, search over name/city/description."""
    stmt = select(Brewery)

    if location:
        pattern = _like(location)
        stmt = stmt.where(
            or_(
                func.lower(Brewery.city).like(pattern),
                func.lower(Brewery.location).like(pattern),
            )
        )

    if search:
        pattern = _like(search)
        stmt = stmt.where(
            or_(
                func.lower(Brewery.name).like(pattern),
                func.lower(Brewery.city).like(pattern),
                func.lower(Brewery.description).like(pattern),
            )
        )

    return stmt.order_by(Brewery.created_at.desc(), Brewery.id.desc())


def slug_exists(db: Session, slug: str) -> bool:
    return db.scalar(select(Brewery.id).where(Brewery.slug == slug).limit(1)) is not None


def name_exists(db: Session, name: str) -> bool:
    return db.scalar(select(Brewery.id).where(Brewery.name == name).limit(1)) is not None
