from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator
from typing import Any, List, Optional
from datetime import datetime
from enum import Enum
import re

from realty.models.property import (
    ALLOWED_PROPERTY_TYPES,
    RESIDENTIAL_PROPERTY_TYPES,
    Currency,
    TransactionType,
)

PROPERTY_CODE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

# Detail fields that mean "not applicable" when empty or zero
DETAIL_STRING_FIELDS = (
    "description",
    "district",
    "address",
    "construction_type",
    "condition_type",
    "heating",
    "furnishing_level",
    "exposure",
)
DETAIL_NUMBER_FIELDS = (
    "floors",
    "floor_number",
    "year_built",
    "bedrooms",
    "bathrooms",
    "terraces",
)
# Cleared for offices, shops, land and other non-residential listings
RESIDENTIAL_ONLY_FIELDS = (
    "bedrooms",
    "bathrooms",
    "terraces",
    "floors",
    "floor_number",
    "construction_type",
    "condition_type",
    "heating",
    "year_built",
    "furnishing_level",
    "exposure",
)

NOT_NULL_FIELDS = (
    "title",
    "price",
    "currency",
    "transaction_type",
    "property_type",
    "city_region",
    "area",
    "has_elevator",
    "has_garage",
    "has_southern_exposure",
    "new_construction",
    "featured",
    "active",
)


def is_residential(property_type: Optional[str]) -> bool:
    return property_type in RESIDENTIAL_PROPERTY_TYPES


def _empty_to_none(value):
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _zero_to_none(value):
    value = _empty_to_none(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value <= 0:
        return None
    return value


class PropertyFields(BaseModel):
    """Field rules shared by create and update payloads."""

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    price: Optional[float] = Field(None, gt=0, le=999_999_999)
    currency: Optional[Currency] = None
    transaction_type: Optional[TransactionType] = None
    property_type: Optional[str] = None
    property_code: Optional[str] = Field(None, max_length=50)

    city_region: Optional[str] = Field(None, max_length=100)
    district: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)

    area: Optional[float] = Field(None, gt=0, le=100_000)
    bedrooms: Optional[int] = Field(None, ge=0, le=1000)
    bathrooms: Optional[int] = Field(None, ge=0, le=1000)
    floors: Optional[int] = Field(None, ge=0, le=1000)
    floor_number: Optional[int] = Field(None, ge=0, le=1000)
    terraces: Optional[int] = Field(None, ge=0, le=1000)
    construction_type: Optional[str] = Field(None, max_length=50)
    condition_type: Optional[str] = Field(None, max_length=50)
    heating: Optional[str] = Field(None, max_length=50)
    exposure: Optional[str] = Field(None, max_length=50)
    year_built: Optional[int] = Field(None, ge=1800, le=2040)
    furnishing_level: Optional[str] = Field(None, max_length=50)

    has_elevator: Optional[StrictBool] = None
    has_garage: Optional[StrictBool] = None
    has_southern_exposure: Optional[StrictBool] = None
    new_construction: Optional[StrictBool] = None
    featured: Optional[StrictBool] = None
    active: Optional[StrictBool] = None
    sort_order: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator(*DETAIL_STRING_FIELDS, "property_code", mode="before")
    @classmethod
    def blank_strings_are_null(cls, v):
        return _empty_to_none(v)

    @field_validator(*DETAIL_NUMBER_FIELDS, mode="before")
    @classmethod
    def zero_details_are_null(cls, v):
        return _zero_to_none(v)

    @field_validator("title")
    @classmethod
    def title_length(cls, v):
        if v is not None and len(v.strip()) < 3:
            raise ValueError("Title must be between 3 and 255 characters")
        return v

    @field_validator("property_type")
    @classmethod
    def known_property_type(cls, v):
        if v is not None and v not in ALLOWED_PROPERTY_TYPES:
            raise ValueError("Invalid property type")
        return v

    @field_validator("property_code")
    @classmethod
    def property_code_format(cls, v):
        if v is not None and not PROPERTY_CODE_PATTERN.match(v):
            raise ValueError(
                "Property code can only contain letters, numbers, dashes, and underscores"
            )
        return v

    @model_validator(mode="after")
    def clear_residential_details(self):
        if self.property_type is not None and not is_residential(self.property_type):
            for field in RESIDENTIAL_ONLY_FIELDS:
                setattr(self, field, None)
        return self


class PropertyCreate(PropertyFields):
    title: str = Field(..., max_length=255)
    price: float = Field(..., gt=0, le=999_999_999)
    transaction_type: TransactionType
    property_type: str
    city_region: str = Field(..., min_length=1, max_length=100)
    area: float = Field(..., gt=0, le=100_000)

    currency: Currency = Currency.EUR
    has_elevator: StrictBool = False
    has_garage: StrictBool = False
    has_southern_exposure: StrictBool = False
    new_construction: StrictBool = False
    featured: StrictBool = False
    active: StrictBool = True

    @field_validator("city_region")
    @classmethod
    def city_region_required(cls, v):
        if not v.strip():
            raise ValueError("Field 'city_region' is required and must be valid")
        return v.strip()

    def to_values(self) -> dict:
        values = self.model_dump()
        values["currency"] = self.currency.value
        values["transaction_type"] = self.transaction_type.value
        return values


class PropertyUpdate(PropertyFields):
    # Optimistic locking: the updated_at value the client last saw
    updated_at: Optional[datetime] = None

    def to_values(self) -> dict:
        """Only the keys the client sent, plus residential clearing."""
        values = self.model_dump(exclude_unset=True, exclude={"updated_at"})
        if self.property_type is not None and not is_residential(self.property_type):
            for field in RESIDENTIAL_ONLY_FIELDS:
                values[field] = None
        for key in ("currency", "transaction_type"):
            if isinstance(values.get(key), Enum):
                values[key] = values[key].value
        # Columns that can't hold NULL ignore an explicit null
        for key in NOT_NULL_FIELDS:
            if key in values and values[key] is None:
                del values[key]
        return values


class PropertyResponse(BaseModel):
    id: str
    property_code: Optional[str] = None
    title: str
    description: Optional[str] = None
    price: float
    currency: str
    transaction_type: str
    property_type: str
    city_region: str
    district: Optional[str] = None
    address: Optional[str] = None
    area: float
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floors: Optional[int] = None
    floor_number: Optional[int] = None
    terraces: Optional[int] = None
    construction_type: Optional[str] = None
    condition_type: Optional[str] = None
    heating: Optional[str] = None
    exposure: Optional[str] = None
    year_built: Optional[int] = None
    furnishing_level: Optional[str] = None
    has_elevator: bool
    has_garage: bool
    has_southern_exposure: bool
    new_construction: bool
    featured: bool
    active: bool
    sort_order: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SortOrderItem(BaseModel):
    id: str
    sort_order: int


class SortOrderUpdate(BaseModel):
    orders: List[SortOrderItem] = Field(..., min_length=1)


class ActiveFilter(str, Enum):
    ACTIVE_ONLY = "active_only"
    ALL = "all"

    @classmethod
    def from_param(cls, raw: Optional[str]) -> "ActiveFilter":
        # Only the literal "all" lifts the active-only restriction
        return cls.ALL if raw == "all" else cls.ACTIVE_ONLY


TRUE_STRINGS = {"1", "true", "yes", "on"}
FALSE_STRINGS = {"0", "false", "no", "off", ""}


def parse_tristate(raw: Optional[str]) -> Optional[bool]:
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in TRUE_STRINGS:
        return True
    if value in FALSE_STRINGS:
        return False
    return None


def parse_bound(raw: Any) -> Optional[float]:
    """Positive number or None; blank, zero and garbage mean no bound."""
    if raw is None:
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    if value != value or value <= 0:  # NaN
        return None
    return value


def _clean_text(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


class PropertyFilters(BaseModel):
    keyword: Optional[str] = None
    transaction_type: Optional[str] = None
    city_region: Optional[str] = None
    district: Optional[str] = None
    property_type: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    area_min: Optional[float] = None
    area_max: Optional[float] = None
    featured: Optional[bool] = None
    active: ActiveFilter = ActiveFilter.ACTIVE_ONLY

    @classmethod
    def from_query(
        cls,
        keyword: Optional[str] = None,
        transaction_type: Optional[str] = None,
        city_region: Optional[str] = None,
        district: Optional[str] = None,
        property_type: Optional[str] = None,
        price_min: Any = None,
        price_max: Any = None,
        area_min: Any = None,
        area_max: Any = None,
        featured: Optional[str] = None,
        active: Optional[str] = None,
    ) -> "PropertyFilters":
        return cls(
            keyword=_clean_text(keyword),
            transaction_type=_clean_text(transaction_type),
            city_region=_clean_text(city_region),
            district=_clean_text(district),
            property_type=_clean_text(property_type),
            price_min=parse_bound(price_min),
            price_max=parse_bound(price_max),
            area_min=parse_bound(area_min),
            area_max=parse_bound(area_max),
            featured=parse_tristate(featured),
            active=ActiveFilter.from_param(active),
        )


def clamp_pagination(page: Any, limit: Any, default_limit: int = 16, max_limit: int = 100):
    """Return (page, limit, offset), never negative and never unbounded."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = default_limit
    page = max(1, page)
    limit = min(max_limit, max(1, limit))
    offset = max(0, (page - 1) * limit)
    return page, limit, offset


def pagination_meta(page: int, limit: int, total: int) -> dict:
    pages = -(-total // limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "hasPrev": page > 1,
        "hasNext": page < pages,
    }
