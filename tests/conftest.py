"""Shared fixtures: extractor/normalizer built from the shipped data files, stub HTTP clients."""
import httpx
import pytest

from occitanie_hub.core.config import DATA_DIR
from occitanie_hub.schemas.event import Category, Event
from occitanie_hub.schemas.source import SourceConfig
from occitanie_hub.services.extractors.fields import FieldExtractor
from occitanie_hub.services.normalizer import RecordNormalizer


@pytest.fixture
def extractor():
    return FieldExtractor.from_file(DATA_DIR / "field_candidates.json")


@pytest.fixture
def normalizer(extractor):
    return RecordNormalizer(extractor)


@pytest.fixture
def make_record():
    """Valid Toulouse record; keyword arguments override or add fields."""
    def factory(i: int = 0, **overrides):
        record = {
            "titre_fr": f"Soirée {i}",
            "geo_point_2d": [43.6, 1.44],
            "lieu_nom": "Halle aux Grains",
            "ville": "Toulouse",
            "debut_manifestation": "2026-11-01",
        }
        record.update(overrides)
        return record
    return factory


@pytest.fixture
def make_event():
    def factory(i: int = 0, **overrides):
        data = {
            "id": f"evt-{i}",
            "title": f"Event {i}",
            "description": "desc",
            "start_date": "2026-11-01",
            "location": "Halle aux Grains, Toulouse",
            "latitude": 43.6,
            "longitude": 1.44,
            "category": Category.CONCERT,
            "organizer": "Événements Toulouse",
            "created_at": "2026-10-19T00:00:00+00:00",
            "updated_at": "2026-10-19T00:00:00+00:00",
        }
        data.update(overrides)
        return Event(**data)
    return factory


@pytest.fixture
def make_source():
    def factory(key: str = "TOULOUSE_EVENTS", **overrides):
        data = {
            "key": key,
            "url": f"https://data.example.org/{key.lower()}/records",
            "category": Category.AUTRE,
            "name": "Événements Toulouse",
            "max_items": 500,
        }
        data.update(overrides)
        return SourceConfig(**data)
    return factory


@pytest.fixture
def mock_client():
    """httpx.AsyncClient whose requests are answered by `handler(request)`."""
    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return factory
