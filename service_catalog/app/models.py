"""
Data models for the Catalog Service.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from shared.errors import InvalidQueryError

Record = Dict[str, Any]

# Textual columns the list search matches against (case-insensitive, OR-ed)
SEARCH_FIELDS = ("brand", "model")


@dataclass(frozen=True)
class ListQuery:
    """Canonical list query: positive page and limit, trimmed search term."""
    page: int = 1
    limit: int = 10
    search_term: str = ""

    def __post_init__(self):
        for name in ("page", "limit"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidQueryError(f"{name} must be an integer", details={name: value})
            if value < 1:
                raise InvalidQueryError(f"{name} must be a positive integer", details={name: value})

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(
        cls,
        page: Any = 1,
        limit: Any = 10,
        search_term: Optional[str] = ""
    ) -> "ListQuery":
        """Coerce raw request parameters, rejecting malformed pagination."""
        return cls(
            page=_coerce_positive_int("page", page),
            limit=_coerce_positive_int("limit", limit),
            search_term=(search_term or "").strip()
        )

    def with_page(self, page: int) -> "ListQuery":
        return ListQuery(page=page, limit=self.limit, search_term=self.search_term)


def _coerce_positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidQueryError(f"{name} must be an integer", details={name: value})
    try:
        number = int(value.strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidQueryError(f"{name} must be an integer", details={name: value}) from None

    if isinstance(value, float) and value != number:
        raise InvalidQueryError(f"{name} must be an integer", details={name: value})
    if number < 1:
        raise InvalidQueryError(f"{name} must be a positive integer", details={name: number})
    return number


@dataclass(frozen=True)
class SearchPredicate:
    """Case-insensitive substring match over SEARCH_FIELDS, OR-ed together."""
    term: str = ""
    fields: tuple = SEARCH_FIELDS

    @property
    def is_empty(self) -> bool:
        return not self.term

    def matches(self, record: Record) -> bool:
        if self.is_empty:
            return True
        needle = self.term.lower()
        return any(needle in str(record.get(f) or "").lower() for f in self.fields)


class ListResult(BaseModel):
    """One page of catalog records with derived navigation flags."""
    records: List[Record] = Field(default_factory=list)
    total_count: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @computed_field
    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @classmethod
    def paginate(cls, records: List[Record], total_count: int, query: ListQuery) -> "ListResult":
        total_pages = total_pages_for(total_count, query.limit)
        return cls(
            records=records,
            total_count=total_count,
            page=clamp_page(query.page, total_pages),
            total_pages=total_pages
        )


def total_pages_for(total_count: int, limit: int) -> int:
    return math.ceil(total_count / limit)


def clamp_page(requested: int, total_pages: int) -> int:
    """Clamp to the last page; keep the requested page when nothing matches."""
    if total_pages > 0:
        return min(requested, total_pages)
    return requested


class VehicleCreate(BaseModel):
    """Payload for adding a vehicle to the catalog."""
    model_config = ConfigDict(extra="forbid")

    brand: str = Field(..., min_length=1, description="Manufacturer")
    model: str = Field(..., min_length=1, description="Model name")
    accel_sec: Optional[float] = Field(None, ge=0, description="0-100 km/h in seconds")
    top_speed_kmh: Optional[int] = Field(None, ge=0)
    range_km: Optional[int] = Field(None, ge=0)
    efficiency_whkm: Optional[int] = Field(None, ge=0)
    fast_charge_kmh: Optional[int] = Field(None, ge=0)
    rapid_charge: Optional[bool] = None
    power_train: Optional[str] = Field(None, description="AWD, RWD or FWD")
    plug_type: Optional[str] = None
    body_style: Optional[str] = None
    segment: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1)
    price_euro: Optional[int] = Field(None, ge=0)


class VehicleUpdate(BaseModel):
    """Partial update; only fields explicitly sent are applied."""
    model_config = ConfigDict(extra="forbid")

    brand: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = Field(None, min_length=1)
    accel_sec: Optional[float] = Field(None, ge=0)
    top_speed_kmh: Optional[int] = Field(None, ge=0)
    range_km: Optional[int] = Field(None, ge=0)
    efficiency_whkm: Optional[int] = Field(None, ge=0)
    fast_charge_kmh: Optional[int] = Field(None, ge=0)
    rapid_charge: Optional[bool] = None
    power_train: Optional[str] = None
    plug_type: Optional[str] = None
    body_style: Optional[str] = None
    segment: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1)
    price_euro: Optional[int] = Field(None, ge=0)

    @field_validator("brand", "model")
    @classmethod
    def _not_null(cls, value: Optional[str]) -> str:
        if value is None:
            raise ValueError("may not be null")
        return value


VEHICLE_FIELDS = tuple(VehicleCreate.model_fields.keys())
