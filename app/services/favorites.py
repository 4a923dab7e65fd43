from __future__ import annotations

from sqlalchemy import delete, func, insert, select
from sqlalchemy.orm import Session, selectinload

from app.db.crud import Page, paginate
from app.models.breweries import Brewery, brewery_favorites
from app.models.users import UserAuth


def is_favorite(db: Session, *, user_id: str, brewery_id: int) -> bool:
    stmt = select(brewery_favorites.c.brewery_id).where(
        brewery_favorites.c.user_id == user_id,
        brewery_favorites.c.brewery_id == brewery_id,
    )
    return db.scalar(stmt) is not None


def add_favorite(db: Session, user: UserAuth, brewery: Brewery) -> bool:
    """Mark ``brewery`` as a favorite. Returns False when it already was one."""
    if is_favorite(db, user_id=user.id, brewery_id=brewery.id):
        return False
    db.execute(insert(brewery_favorites).values(user_id=user.id, brewery_id=brewery.id))
    db.commit()
    return True


def remove_favorite(db: Session, user: UserAuth, brewery: Brewery) -> bool:
    res = db.execute(
        delete(brewery_favorites).where(
            brewery_favorites.c.user_id == user.id,
            brewery_favorites.c.brewery_id == brewery.id,
        )
    )
    db.commit()
    return bool(res.rowcount)


def favorites_count(db: Session, brewery_id: int) -> int:
    stmt = select(func.count()).select_from(brewery_favorites).where(brewery_favorites.c.brewery_id == brewery_id)
    return int(db.scalar(stmt) or 0)


def user_favorites(db: Session, user: UserAuth, *, page: int = 1, per_page: int = 12) -> Page:
    stmt = (
        select(Brewery)
        .join(brewery_favorites, brewery_favorites.c.brewery_id == Brewery.id)
        .where(brewery_favorites.c.user_id == user.id)
        .options(selectinload(Brewery.beers))
        .order_by(brewery_favorites.c.created_at.desc(), Brewery.id.desc())
    )
    return paginate(db, stmt, page=page, per_page=per_page)
