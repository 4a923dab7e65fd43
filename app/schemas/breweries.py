from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

MIN_FOUNDED_YEAR = 1800

_url_adapter = TypeAdapter(AnyHttpUrl)


class BreweryForm(BaseModel):
    """Submitted listing fields (multipart form on create and update)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    city: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    latitude: Decimal = Field(allow_inf_nan=False)
    longitude: Decimal = Field(allow_inf_nan=False)
    founded_year: int | None = Field(default=None, ge=MIN_FOUNDED_YEAR)
    website: str | None = Field(default=None, max_length=255)
    visitable: bool = False

    @field_validator("location", "founded_year", "website", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("visitable", mode="before")
    @classmethod
    def _blank_is_false(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return False
        return v

    @field_validator("founded_year")
    @classmethod
    def _not_in_future(cls, v: int | None) -> int | None:
        current = datetime.now().year
        if v is not None and v > current:
            raise ValueError(f"Input should be less than or equal to {current}")
        return v

    @field_validator("website")
    @classmethod
    def _valid_url(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            _url_adapter.validate_python(v)
        except ValidationError:
            raise ValueError("The website must be a valid URL.") from None
        return v


class BeerResponse(BaseModel):
    id: int
    name: str
    style: str | None
    abv: float | None
    description: str | None


class BeerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    style: str | None = Field(default=None, max_length=120)
    abv: Decimal | None = Field(default=None, ge=0, le=100, decimal_places=2)
    description: str | None = None


class BeerListResponse(BaseModel):
    items: list[BeerResponse]
    total: int
    page: int
    per_page: int
    last_page: int


class BreweryResponse(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    city: str
    location: str | None
    address: str
    latitude: float
    longitude: float
    founded_year: int | None
    website: str | None
    visitable: bool
    image: str
    image_url: str
    owner_id: str | None
    avg_rating: float
    reviews_count: int
    beers: list[BeerResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class BreweryListResponse(BaseModel):
    items: list[BreweryResponse]
    total: int
    page: int
    per_page: int
    last_page: int


class BreweryDetailResponse(BaseModel):
    brewery: BreweryResponse
    beers: BeerListResponse
    favorites_count: int = 0


class FormField(BaseModel):
    name: str
    type: str
    required: bool
    rules: list[str]
    value: Any = None


class BreweryFormResponse(BaseModel):
    action: str
    method: str
    enctype: str = "multipart/form-data"
    fields: list[FormField]


class BreweryEditResponse(BaseModel):
    brewery: BreweryResponse
    form: BreweryFormResponse


class ActionResult(BaseModel):
    message: str
    redirect_to: str
    brewery: BreweryResponse | None = None


class BreweryFilterParams(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=255)
    visitable: bool | None = None
    user_id: str | None = Field(default=None, max_length=36)
    year_min: int | None = Field(default=None, ge=0)
    year_max: int | None = Field(default=None, ge=0)
    # Unknown values fall back to name ordering
    order_by: str = Field(default="name", max_length=32)
    order_direction: Literal["asc", "desc"] = "asc"
