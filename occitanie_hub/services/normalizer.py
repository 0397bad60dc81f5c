"""
Quality standard: Best-effort normalization.
Reason: Upstream data quality varies a lot between portals. A record that
cannot become a valid `Event` is dropped with a reason, never raised, so that
one bad row does not cost the whole source.
"""
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from occitanie_hub.core.logger import log
from occitanie_hub.schemas.event import BoundingBox, Category, Event
from occitanie_hub.services.extractors.fields import FieldExtractor

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500


class DropReason(str, Enum):
    NOT_A_RECORD = "not_a_record"
    MISSING_TITLE = "missing_title"
    INVALID_COORDINATES = "invalid_coordinates"
    OUT_OF_BOUNDS = "out_of_bounds"
    MISSING_LOCATION = "missing_location"
    MISSING_START_DATE = "missing_start_date"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class NormalizeResult:
    event: Optional[Event] = None
    reason: Optional[DropReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.event is not None

    @classmethod
    def dropped(cls, reason: DropReason, detail: str = "") -> "NormalizeResult":
        return cls(reason=reason, detail=detail)


class EventIdSequence:
    """Ids unique within one aggregation run: '{src}-{title}-{seq}-{ts}'."""

    def __init__(self):
        self.count = 0

    def reset(self):
        self.count = 0

    def next_id(self, title: str, source_name: str) -> str:
        self.count += 1
        clean_title = re.sub(r"[^a-z0-9]", "-", title.lower())
        clean_title = re.sub(r"-+", "-", clean_title)[:15]
        prefix = re.sub(r"[^a-z0-9]", "", source_name, flags=re.IGNORECASE).lower()[:3]
        timestamp = str(int(time.time() * 1000))[-6:]
        return f"{prefix}-{clean_title}-{self.count}-{timestamp}"


class RecordNormalizer:
    def __init__(
        self,
        extractor: FieldExtractor,
        bounding_box: Optional[BoundingBox] = None,
        debug: bool = False,
        reject_missing_start_date: bool = False,
    ):
        self.extractor = extractor
        self.bounding_box = bounding_box or BoundingBox()
        self.debug = debug
        self.reject_missing_start_date = reject_missing_start_date
        self.sequence = EventIdSequence()
        self.run_timestamp = datetime.now(timezone.utc).isoformat()

    def begin_run(self):
        """Called once per aggregation run: fresh id sequence and timestamps."""
        self.sequence.reset()
        self.run_timestamp = datetime.now(timezone.utc).isoformat()

    def _debug(self, message: str, *args):
        if self.debug:
            log.debug("[DEBUG API] " + message, *args)

    def normalize(
        self,
        raw_fields: Any,
        raw_geometry: Any,
        default_category: Category,
        source_name: str,
        source_key: str = "",
    ) -> Optional[Event]:
        return self.evaluate(raw_fields, raw_geometry, default_category, source_name, source_key).event

    def evaluate(
        self,
        raw_fields: Any,
        raw_geometry: Any,
        default_category: Category,
        source_name: str,
        source_key: str = "",
    ) -> NormalizeResult:
        try:
            result = self._evaluate(raw_fields, raw_geometry, Category(default_category), source_name, source_key)
        except Exception as e:
            result = NormalizeResult.dropped(DropReason.UNEXPECTED_ERROR, f"{type(e).__name__}: {e}")

        if not result.ok:
            self._debug("{} dropped ({}): {}", source_name, result.reason.value, result.detail)
        return result

    def _evaluate(
        self,
        fields: Any,
        geometry: Any,
        default_category: Category,
        source_name: str,
        source_key: str,
    ) -> NormalizeResult:
        if not isinstance(fields, Mapping) or not fields:
            return NormalizeResult.dropped(DropReason.NOT_A_RECORD, type(fields).__name__)

        title = self.extractor.extract_title(fields)
        if not title or self.extractor.is_placeholder_title(title):
            return NormalizeResult.dropped(DropReason.MISSING_TITLE, f"keys={list(fields)[:15]}")

        coords = self.extractor.extract_coordinates(fields, geometry)
        if coords is None:
            return NormalizeResult.dropped(DropReason.INVALID_COORDINATES, title)

        if not self.bounding_box.contains(coords.latitude, coords.longitude):
            return NormalizeResult.dropped(
                DropReason.OUT_OF_BOUNDS, f"{title} ({coords.latitude}, {coords.longitude})"
            )

        location = self.extractor.build_location(fields).strip()
        if not location:
            return NormalizeResult.dropped(DropReason.MISSING_LOCATION, title)

        start_date = self.extractor.find_start_date(fields)
        if start_date is None:
            if self.reject_missing_start_date:
                return NormalizeResult.dropped(DropReason.MISSING_START_DATE, title)
            start_date = self.extractor.extract_start_date(fields)

        description = self.extractor.extract_description(fields, source_name, title)

        event = Event(
            id=self.sequence.next_id(title, source_name),
            title=title[:TITLE_MAX_LENGTH].strip(),
            description=description[:DESCRIPTION_MAX_LENGTH].strip(),
            start_date=start_date,
            end_date=self.extractor.extract_end_date(fields),
            location=location,
            latitude=coords.latitude,
            longitude=coords.longitude,
            category=self.categorize(fields, source_name, default_category),
            organizer=source_name,
            price=self.extractor.extract_price(fields),
            website_url=self.extractor.extract_website(fields),
            contact_email=self.extractor.extract_contact_email(fields),
            image_url=self.extractor.extract_image(fields),
            created_at=self.run_timestamp,
            updated_at=self.run_timestamp,
            source_key=source_key,
        )
        return NormalizeResult(event=event)

    def categorize(self, fields: Mapping, source_name: str, default_category: Category) -> Category:
        text = self.extractor.classification_text(fields)
        candidates = self.extractor.candidates

        for rule in candidates.get("category_rules", []):
            if any(keyword in text for keyword in rule["keywords"]):
                return Category(rule["category"])

        for rule in candidates.get("source_name_rules", []):
            if any(pattern in source_name for pattern in rule["patterns"]):
                return Category(rule["category"])

        return default_category
