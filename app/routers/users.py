from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_user
from app.db.session import get_db
from app.models.users import UserAuth
from app.routers.breweries import _brewery_page
from app.schemas.auth import UserMeResponse
from app.schemas.breweries import BreweryListResponse
from app.services.favorites import user_favorites

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserMeResponse)
def me(current: UserAuth = Depends(get_current_user)) -> UserMeResponse:
    return UserMeResponse(
        id=current.id,
        email=current.email,
        display_name=current.display_name,
        role=current.role,
        is_active=current.is_active,
    )


@router.get("/me/favorites", response_model=BreweryListResponse)
def my_favorites(
    page: int = Query(default=1, ge=1),
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BreweryListResponse:
    return _brewery_page(db, user_favorites(db, current, page=page))
