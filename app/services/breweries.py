from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError
from slugify import slugify
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.db.crud import Page, name_exists, paginate, search_breweries, slug_exists
from app.models.breweries import Beer, Brewery, brewery_beer
from app.models.enums import ReviewableType
from app.models.reviews import Review
from app.models.users import UserAuth
from app.schemas.breweries import MIN_FOUNDED_YEAR, BeerCreate, BreweryForm
from app.services.storage import LocalImageStorage, UploadedImage, validate_image

logger = logging.getLogger(__name__)

LIST_PER_PAGE = 12
MINE_PER_PAGE = 10
DETAIL_BEERS_PER_PAGE = 8

# Fixed path segments under /breweries; a slug equal to one could never be looked up.
RESERVED_SLUGS = frozenset({"filter", "mine", "create"})

# SQLite INTEGER primary keys are signed 64-bit.
MAX_ID = 2**63 - 1


class BreweryError(Exception):
    pass


class BreweryNotFound(BreweryError):
    def __init__(self, identifier: str) -> None:
        super().__init__(f"Brewery not found: {identifier!r}")
        self.identifier = identifier


class NotAuthorized(BreweryError):
    pass


class SlugConflict(BreweryError):
    pass


class BreweryValidationError(BreweryError):
    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__("Validation failed")
        self.errors = errors


# --- validation -------------------------------------------------------------


def _field_errors(exc: ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "__all__"
        msg = err["msg"]
        if err["type"] == "missing":
            msg = "This field is required."
        errors.setdefault(field, []).append(msg)
    return errors


def validate_brewery(
    db: Session,
    data: Mapping[str, Any],
    image: UploadedImage | None,
    *,
    unique_name: bool,
) -> BreweryForm:
    errors: dict[str, list[str]] = {}
    form: BreweryForm | None = None
    try:
        form = BreweryForm.model_validate(dict(data))
    except ValidationError as exc:
        errors = _field_errors(exc)

    if unique_name and form is not None and name_exists(db, form.name):
        errors.setdefault("name", []).append("The name has already been taken.")

    if image is not None:
        image_errors = validate_image(image)
        if image_errors:
            errors["image"] = image_errors

    if errors or form is None:
        raise BreweryValidationError(errors)
    return form


# --- slugs ------------------------------------------------------------------


def make_slug(name: str) -> str:
    return slugify(name) or "brewery"


def unique_slug(db: Session, name: str) -> str:
    """Slug for ``name``, suffixed ``-1``, ``-2``, ... until unused.

    Check-then-insert: two concurrent creates can pick the same slug; the
    unique index rejects the second one.
    """
    base = make_slug(name)
    slug = base
    counter = 1
    while slug in RESERVED_SLUGS or slug_exists(db, slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


# --- lookup -----------------------------------------------------------------


def _by_id(db: Session, identifier: str) -> Brewery | None:
    if not (identifier.isascii() and identifier.isdigit()):
        return None
    pk = int(identifier)
    if pk > MAX_ID:
        return None
    return db.get(Brewery, pk)


def _by_name(db: Session, identifier: str) -> Brewery | None:
    return db.scalar(select(Brewery).where(Brewery.name == identifier).order_by(Brewery.id).limit(1))


def _by_slug(db: Session, identifier: str) -> Brewery | None:
    return db.scalar(select(Brewery).where(Brewery.slug == identifier))


def _by_name_slug(db: Session, identifier: str) -> Brewery | None:
    # Listings renamed after creation keep their stored slug; match the current name too.
    stmt = select(Brewery).order_by(Brewery.id)
    for brewery in db.scalars(stmt):
        if slugify(brewery.name) == identifier:
            return brewery
    return None


RESOLVERS: tuple[Callable[[Session, str], Brewery | None], ...] = (
    _by_id,
    _by_name,
    _by_slug,
    _by_name_slug,
)


def resolve_brewery(db: Session, identifier: str) -> Brewery:
    identifier = str(identifier).strip()
    if identifier:
        for resolver in RESOLVERS:
            brewery = resolver(db, identifier)
            if brewery is not None:
                return brewery
    raise BreweryNotFound(identifier)


# --- policies ---------------------------------------------------------------


def can_update(user: UserAuth, brewery: Brewery) -> bool:
    return user.is_admin or brewery.is_owned_by(user.id)


def can_delete(user: UserAuth) -> bool:
    return user.is_admin


# --- read operations --------------------------------------------------------


def list_breweries(db: Session, *, location: str | None = None, search: str | None = None, page: int = 1) -> Page:
    stmt = search_breweries(location=location, search=search).options(selectinload(Brewery.beers))
    return paginate(db, stmt, page=page, per_page=LIST_PER_PAGE)


def brewery_beers(db: Session, brewery: Brewery, *, page: int = 1, per_page: int = DETAIL_BEERS_PER_PAGE) -> Page:
    stmt = (
        select(Beer)
        .join(brewery_beer, brewery_beer.c.beer_id == Beer.id)
        .where(brewery_beer.c.brewery_id == brewery.id)
        .order_by(Beer.name, Beer.id)
    )
    return paginate(db, stmt, page=page, per_page=per_page)


def find_for_display(db: Session, identifier: str, *, beers_page: int = 1) -> tuple[Brewery, Page]:
    brewery = resolve_brewery(db, identifier)
    return brewery, brewery_beers(db, brewery, page=beers_page)


def my_breweries(db: Session, current_user: UserAuth, *, page: int = 1) -> Page:
    stmt = (
        select(Brewery)
        .where(Brewery.user_id == current_user.id)
        .options(selectinload(Brewery.beers))
        .order_by(Brewery.created_at.desc(), Brewery.id.desc())
    )
    return paginate(db, stmt, page=page, per_page=MINE_PER_PAGE)


def find_for_edit(db: Session, identifier: str) -> Brewery:
    return resolve_brewery(db, identifier)


FORM_FIELDS: list[tuple[str, str, bool, list[str]]] = [
    ("name", "text", True, ["string", "max:255", "unique:breweries,name"]),
    ("description", "textarea", True, ["string"]),
    ("city", "text", True, ["string", "max:255"]),
    ("location", "text", False, ["string", "max:255"]),
    ("address", "text", True, ["string", "max:255"]),
    ("latitude", "number", True, ["numeric"]),
    ("longitude", "number", True, ["numeric"]),
    ("founded_year", "number", False, ["integer", f"min:{MIN_FOUNDED_YEAR}", "max:current_year"]),
    ("website", "url", False, ["url", "max:255"]),
    ("visitable", "checkbox", False, ["boolean"]),
    ("image", "file", False, ["image", "max:2048"]),
]


def create_form(brewery: Brewery | None = None) -> dict[str, Any]:
    """Form descriptor for the create page, or the edit page when ``brewery`` is given."""
    logger.debug("Building brewery form (edit=%s)", brewery is not None)
    fields = []
    for name, kind, required, rules in FORM_FIELDS:
        if brewery is not None and name == "name":
            rules = [r for r in rules if not r.startswith("unique:")]
        value: Any = None
        if brewery is not None:
            value = brewery.image_path if name == "image" else getattr(brewery, name)
            if value is not None and name in ("latitude", "longitude"):
                value = float(value)
        elif name == "visitable":
            value = False
        fields.append({"name": name, "type": kind, "required": required, "rules": rules, "value": value})

    if brewery is None:
        return {"action": "/breweries", "method": "POST", "fields": fields}
    return {"action": f"/breweries/{brewery.slug}", "method": "PUT", "fields": fields}


# --- write operations -------------------------------------------------------


def create_brewery(
    db: Session,
    storage: LocalImageStorage,
    current_user: UserAuth,
    data: Mapping[str, Any],
    image: UploadedImage | None = None,
) -> Brewery:
    form = validate_brewery(db, data, image, unique_name=True)

    image_path = storage.store(image) if image is not None else None

    slug = unique_slug(db, form.name)
    brewery = Brewery(
        **form.model_dump(),
        slug=slug,
        user_id=current_user.id,
        image=image_path,
    )
    db.add(brewery)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # The stored image (if any) stays on disk; file writes are not rolled back.
        logger.warning("Slug conflict while creating brewery %r: %s", form.name, exc.orig)
        raise SlugConflict(f"Slug {slug!r} was taken concurrently, please retry") from exc
    db.refresh(brewery)

    logger.info("Brewery %s (%s) created by user %s", brewery.id, brewery.slug, current_user.id)
    return brewery


def update_brewery(
    db: Session,
    storage: LocalImageStorage,
    current_user: UserAuth,
    brewery: Brewery,
    data: Mapping[str, Any],
    image: UploadedImage | None = None,
) -> Brewery:
    if not can_update(current_user, brewery):
        raise NotAuthorized("Only the owner or an administrator can edit this brewery")

    # Name uniqueness is not re-checked on update.
    form = validate_brewery(db, data, image, unique_name=False)

    if image is not None:
        if not storage.is_default(brewery.image):
            storage.delete(brewery.image)
        brewery.image = storage.store(image)

    for field, value in form.model_dump().items():
        setattr(brewery, field, value)

    db.add(brewery)
    db.commit()
    db.refresh(brewery)

    logger.info("Brewery %s updated by user %s", brewery.id, current_user.id)
    return brewery


def delete_brewery(db: Session, storage: LocalImageStorage, current_user: UserAuth, brewery: Brewery) -> None:
    if not can_delete(current_user):
        raise NotAuthorized("Only administrators can delete breweries")

    if not storage.is_default(brewery.image):
        storage.delete(brewery.image)

    brewery_id = brewery.id
    # Polymorphic reviews carry no FK, so they are not cascaded by the database.
    db.execute(
        delete(Review).where(
            Review.reviewable_type == ReviewableType.brewery.value,
            Review.reviewable_id == brewery_id,
        )
    )
    db.delete(brewery)
    db.commit()
    logger.info("Brewery %s deleted by admin %s", brewery_id, current_user.id)


def add_beer(db: Session, current_user: UserAuth, brewery: Brewery, payload: BeerCreate) -> Beer:
    if not can_update(current_user, brewery):
        raise NotAuthorized("Only the owner or an administrator can add beers to this brewery")

    beer = Beer(
        name=payload.name.strip(),
        style=(payload.style or "").strip() or None,
        abv=payload.abv,
        description=(payload.description or "").strip() or None,
    )
    brewery.beers.append(beer)
    db.add(brewery)
    db.commit()
    db.refresh(beer)
    return beer
