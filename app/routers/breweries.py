from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_current_user
from app.db.crud import Page, filter_breweries, paginate
from app.db.session import get_db
from app.models.breweries import Beer, Brewery
from app.models.users import UserAuth
from app.schemas.breweries import (
    ActionResult,
    BeerCreate,
    BeerListResponse,
    BeerResponse,
    BreweryDetailResponse,
    BreweryEditResponse,
    BreweryFilterParams,
    BreweryFormResponse,
    BreweryListResponse,
    BreweryResponse,
)
from app.services import breweries as service
from app.services.favorites import add_favorite, favorites_count, remove_favorite
from app.services.ratings import bulk_rating_stats, rating_stats
from app.services.storage import LocalImageStorage, UploadedImage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/breweries", tags=["breweries"])

MINE_URL = "/breweries/mine"
INDEX_URL = "/breweries"


def _to_beer_response(beer: Beer) -> BeerResponse:
    return BeerResponse(
        id=beer.id,
        name=beer.name,
        style=beer.style,
        abv=float(beer.abv) if beer.abv is not None else None,
        description=beer.description,
    )


def _to_brewery_response(
    brewery: Brewery, stats: tuple[float, int] = (0.0, 0), *, with_beers: bool = True
) -> BreweryResponse:
    avg, count = stats
    return BreweryResponse(
        id=brewery.id,
        slug=brewery.slug,
        name=brewery.name,
        description=brewery.description,
        city=brewery.city,
        location=brewery.location,
        address=brewery.address,
        latitude=float(brewery.latitude),
        longitude=float(brewery.longitude),
        founded_year=brewery.founded_year,
        website=brewery.website,
        visitable=brewery.visitable,
        image=brewery.image_path,
        image_url=f"/storage/{brewery.image_path}",
        owner_id=brewery.user_id,
        avg_rating=avg,
        reviews_count=count,
        beers=[_to_beer_response(b) for b in brewery.beers] if with_beers else [],
        created_at=brewery.created_at,
        updated_at=brewery.updated_at,
    )


def _brewery_page(db: Session, page: Page) -> BreweryListResponse:
    stats = bulk_rating_stats(db, [b.id for b in page.items])
    return BreweryListResponse(
        items=[_to_brewery_response(b, stats.get(b.id, (0.0, 0))) for b in page.items],
        total=page.total,
        page=page.page,
        per_page=page.per_page,
        last_page=page.last_page,
    )


def _beer_page(page: Page) -> BeerListResponse:
    return BeerListResponse(
        items=[_to_beer_response(b) for b in page.items],
        total=page.total,
        page=page.page,
        per_page=page.per_page,
        last_page=page.last_page,
    )


def _single(db: Session, brewery: Brewery) -> BreweryResponse:
    return _to_brewery_response(brewery, rating_stats(db, reviewable_id=brewery.id))


def brewery_form_data(
    name: str | None = Form(default=None),
    description: str | None = Form(default=None),
    city: str | None = Form(default=None),
    location: str | None = Form(default=None),
    address: str | None = Form(default=None),
    latitude: str | None = Form(default=None),
    longitude: str | None = Form(default=None),
    founded_year: str | None = Form(default=None),
    website: str | None = Form(default=None),
    visitable: str | None = Form(default=None),
) -> dict[str, Any]:
    """Raw form fields; validation happens in the service so errors come back per field."""
    raw = {
        "name": name,
        "description": description,
        "city": city,
        "location": location,
        "address": address,
        "latitude": latitude,
        "longitude": longitude,
        "founded_year": founded_year,
        "website": website,
        "visitable": visitable,
    }
    return {k: v for k, v in raw.items() if v is not None}


async def _read_upload(upload: UploadFile | None) -> UploadedImage | None:
    # Browsers submit an empty part with no filename when nothing is chosen.
    if upload is None or not upload.filename:
        return None
    # One byte past the limit is enough for the size check to reject it.
    content = await upload.read(settings.max_image_kb * 1024 + 1)
    return UploadedImage(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        content=content,
    )


@router.get("", response_model=BreweryListResponse)
def list_breweries(
    db: Session = Depends(get_db),
    location: str | None = Query(default=None, max_length=255),
    search: str | None = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
) -> BreweryListResponse:
    result = service.list_breweries(db, location=location, search=search, page=page)
    return _brewery_page(db, result)


@router.get("/filter", response_model=BreweryListResponse)
def filter_listing(
    filters: BreweryFilterParams = Depends(),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=service.LIST_PER_PAGE, ge=1, le=100),
    db: Session = Depends(get_db),
) -> BreweryListResponse:
    stmt = filter_breweries(filters.model_dump())
    return _brewery_page(db, paginate(db, stmt, page=page, per_page=per_page))


@router.get("/mine", response_model=BreweryListResponse)
def my_breweries(
    page: int = Query(default=1, ge=1),
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BreweryListResponse:
    return _brewery_page(db, service.my_breweries(db, current, page=page))


@router.get("/create", response_model=BreweryFormResponse)
def create_form(current: UserAuth = Depends(get_current_user)) -> BreweryFormResponse:
    return BreweryFormResponse.model_validate(service.create_form())


@router.post("", response_model=ActionResult, status_code=201)
async def store_brewery(
    data: dict[str, Any] = Depends(brewery_form_data),
    image: UploadFile | None = File(default=None),
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalImageStorage = Depends(get_storage),
) -> ActionResult:
    upload = await _read_upload(image)
    brewery = service.create_brewery(db, storage, current, data, upload)
    return ActionResult(
        message="Brewery created successfully",
        redirect_to=MINE_URL,
        brewery=_single(db, brewery),
    )


@router.get("/{identifier}", response_model=BreweryDetailResponse)
def show_brewery(
    identifier: str,
    beers_page: int = Query(default=1, ge=1),
    db: Session = Depends(get_db),
) -> BreweryDetailResponse:
    brewery, beers = service.find_for_display(db, identifier, beers_page=beers_page)
    return BreweryDetailResponse(
        brewery=_to_brewery_response(brewery, rating_stats(db, reviewable_id=brewery.id), with_beers=False),
        beers=_beer_page(beers),
        favorites_count=favorites_count(db, brewery.id),
    )


@router.get("/{identifier}/edit", response_model=BreweryEditResponse)
def edit_brewery(
    identifier: str,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BreweryEditResponse:
    brewery = service.find_for_edit(db, identifier)
    return BreweryEditResponse(
        brewery=_single(db, brewery),
        form=BreweryFormResponse.model_validate(service.create_form(brewery)),
    )


@router.api_route("/{identifier}", methods=["PUT", "PATCH"], response_model=ActionResult)
async def update_brewery(
    identifier: str,
    data: dict[str, Any] = Depends(brewery_form_data),
    image: UploadFile | None = File(default=None),
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalImageStorage = Depends(get_storage),
) -> ActionResult:
    brewery = service.resolve_brewery(db, identifier)
    upload = await _read_upload(image)
    brewery = service.update_brewery(db, storage, current, brewery, data, upload)
    return ActionResult(
        message="Brewery updated successfully",
        redirect_to=MINE_URL,
        brewery=_single(db, brewery),
    )


@router.delete("/{identifier}", response_model=ActionResult)
def destroy_brewery(
    identifier: str,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalImageStorage = Depends(get_storage),
) -> ActionResult:
    brewery = service.resolve_brewery(db, identifier)
    service.delete_brewery(db, storage, current, brewery)
    return ActionResult(message="Brewery deleted successfully", redirect_to=INDEX_URL)


@router.get("/{identifier}/beers", response_model=BeerListResponse)
def list_beers(
    identifier: str,
    page: int = Query(default=1, ge=1),
    db: Session = Depends(get_db),
) -> BeerListResponse:
    brewery = service.resolve_brewery(db, identifier)
    return _beer_page(service.brewery_beers(db, brewery, page=page))


@router.post("/{identifier}/beers", response_model=BeerResponse, status_code=201)
def add_beer(
    identifier: str,
    payload: BeerCreate,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BeerResponse:
    brewery = service.resolve_brewery(db, identifier)
    return _to_beer_response(service.add_beer(db, current, brewery, payload))


@router.post("/{identifier}/favorite", status_code=204)
def favorite(
    identifier: str,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    brewery = service.resolve_brewery(db, identifier)
    add_favorite(db, current, brewery)


@router.delete("/{identifier}/favorite", status_code=204)
def unfavorite(
    identifier: str,
    current: UserAuth = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    brewery = service.resolve_brewery(db, identifier)
    remove_favorite(db, current, brewery)
