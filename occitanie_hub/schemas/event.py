"""
Quality standard: Deterministic identity.
Reason: Canonical `Event` shared by every open-data source once normalized.
"""
import hashlib
from enum import Enum
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CITY = "Autre"


class Category(str, Enum):
    FESTIVAL = "festival"
    CONCERT = "concert"
    EXPOSITION = "exposition"
    CONFERENCE = "conference"
    ATELIER = "atelier"
    AUTRE = "autre"


class Coordinates(NamedTuple):
    latitude: float
    longitude: float


class BoundingBox(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_lat: float = 41.5
    max_lat: float = 45.5
    min_lon: float = -1.5
    max_lon: float = 5.5

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.min_lat <= latitude <= self.max_lat and self.min_lon <= longitude <= self.max_lon


def city_from_location(location: str) -> str:
    """Last comma-delimited segment of a location, e.g. 'Halle, 2 rue X, Albi' -> 'Albi'."""
    return location.split(",")[-1].strip() or DEFAULT_CITY


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(max_length=500)
    start_date: str
    end_date: Optional[str] = None
    location: str = Field(min_length=1)
    latitude: float
    longitude: float
    category: Category
    organizer: str
    price: Optional[float] = None
    website_url: Optional[str] = None
    contact_email: Optional[str] = None
    image_url: Optional[str] = None
    created_at: str
    updated_at: str
    source_key: str = ""
    dedupe_key: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def generate_dedupe_key(cls, data):
        if isinstance(data, dict) and not data.get("dedupe_key"):
            # Same title, same day and same city means the same physical event
            seed = f"{data.get('title', '')}{str(data.get('start_date', ''))[:10]}{city_from_location(data.get('location', ''))}"
            data = {**data, "dedupe_key": hashlib.sha256(seed.lower().encode()).hexdigest()}
        return data

    @property
    def city(self) -> str:
        return city_from_location(self.location)

    @property
    def is_free(self) -> bool:
        return self.price == 0

    @property
    def is_mappable(self) -> bool:
        return has_map_coordinates(self.latitude, self.longitude)


def has_map_coordinates(latitude, longitude) -> bool:
    """Valid, non-zero numeric coordinates."""
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if value != value or value == 0:  # NaN or zero
            return False
    return True


class AggregationStats(BaseModel):
    total: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_cities: dict[str, int] = Field(default_factory=dict)
    by_source: dict[str, int] = Field(default_factory=dict)
    free: int = 0
    paid: int = 0
