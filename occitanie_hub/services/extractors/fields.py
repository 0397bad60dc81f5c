"""
Quality standard: Chain of responsibility over editable data.
Reason: No two open-data portals share a schema. Each logical field has an
ordered list of candidate keys (field_candidates.json) and the first usable
value wins. Onboarding a new source means appending keys to that file.
"""
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from occitanie_hub.core.exceptions import SourceConfigError
from occitanie_hub.schemas.event import Category, Coordinates

TARIFF_PATTERN = re.compile(r"(\d+(?:,\d+)?)")


def clean_string(value: Any) -> Optional[str]:
    """Trimmed string, or None when the value is not a non-empty string."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def is_number(value: Any) -> bool:
    # bool is an int subclass, but True is not a coordinate
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def valid_coordinates(latitude: Any, longitude: Any) -> Optional[Coordinates]:
    if not is_number(latitude) or not is_number(longitude):
        return None
    if latitude == 0 or longitude == 0:
        return None
    if abs(latitude) > 90 or abs(longitude) > 180:
        return None
    return Coordinates(float(latitude), float(longitude))


# ── Coordinate shapes ──
# Every shape receives (fields, geometry, step) and returns a candidate pair or None.

def _from_geometry(fields: Mapping, geometry: Any, step: dict):
    # GeoJSON order: [lon, lat]
    if isinstance(geometry, Mapping):
        coords = geometry.get("coordinates")
        if isinstance(coords, (list, tuple)) and len(coords) == 2:
            return coords[1], coords[0]
    return None


def _from_lat_lon_array(fields: Mapping, geometry: Any, step: dict):
    value = fields.get(step["key"])
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None


def _from_lon_lat_array(fields: Mapping, geometry: Any, step: dict):
    value = fields.get(step["key"])
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[1], value[0]
    return None


def _from_lat_lon_object(fields: Mapping, geometry: Any, step: dict):
    value = fields.get(step["key"])
    if isinstance(value, Mapping) and "lat" in value and "lon" in value:
        return value["lat"], value["lon"]
    return None


def _from_scalar_pair(fields: Mapping, geometry: Any, step: dict):
    if step["lat"] in fields and step["lon"] in fields:
        return fields[step["lat"]], fields[step["lon"]]
    return None


COORDINATE_SHAPES: dict[str, Callable[[Mapping, Any, dict], Optional[tuple]]] = {
    "geometry": _from_geometry,
    "lat_lon_array": _from_lat_lon_array,
    "lon_lat_array": _from_lon_lat_array,
    "lat_lon_object": _from_lat_lon_object,
    "scalar_pair": _from_scalar_pair,
}

# Keys each shape reads from its step
SHAPE_KEYS = {
    "geometry": (),
    "lat_lon_array": ("key",),
    "lon_lat_array": ("key",),
    "lat_lon_object": ("key",),
    "scalar_pair": ("lat", "lon"),
}

RULE_MATCHERS = {"category_rules": "keywords", "source_name_rules": "patterns"}


def load_field_candidates(path: Path) -> dict:
    try:
        candidates = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise SourceConfigError(f"Unable to read field candidates {path}: {e}") from e
    if not isinstance(candidates, dict):
        raise SourceConfigError(f"{path}: expected a JSON object")
    for step in candidates.get("coordinates", []):
        if not isinstance(step, dict) or step.get("shape") not in COORDINATE_SHAPES:
            raise SourceConfigError(f"{path}: unknown coordinate shape in {step!r}")
        missing = [key for key in SHAPE_KEYS[step["shape"]] if not isinstance(step.get(key), str)]
        if missing:
            raise SourceConfigError(f"{path}: coordinate step {step!r} is missing {missing}")

    for section, matcher in RULE_MATCHERS.items():
        for rule in candidates.get(section, []):
            if not isinstance(rule, dict) or not isinstance(rule.get(matcher), list):
                raise SourceConfigError(f"{path}: {section} entry {rule!r} needs a '{matcher}' list")
            try:
                Category(rule.get("category"))
            except ValueError:
                raise SourceConfigError(f"{path}: {section} entry has unknown category {rule.get('category')!r}") from None
    return candidates


class FieldExtractor:
    """Locates the best candidate value for each logical field of a raw record."""

    def __init__(self, candidates: dict):
        self.candidates = candidates

    @classmethod
    def from_file(cls, path: Path) -> "FieldExtractor":
        return cls(load_field_candidates(path))

    def keys(self, field: str) -> list[str]:
        return self.candidates.get(field, [])

    def first_string(self, raw: Mapping, field: str, min_length: int = 0) -> Optional[str]:
        for key in self.keys(field):
            value = clean_string(raw.get(key))
            if value is not None and len(value) > min_length:
                return value
        return None

    def extract_title(self, raw: Mapping) -> str:
        return self.first_string(raw, "title") or ""

    def is_placeholder_title(self, title: str) -> bool:
        return title in self.candidates.get("placeholder_titles", [])

    def extract_coordinates(self, raw: Mapping, geometry: Any = None) -> Optional[Coordinates]:
        for step in self.candidates.get("coordinates", []):
            pair = COORDINATE_SHAPES[step["shape"]](raw, geometry, step)
            if pair is None:
                continue
            coords = valid_coordinates(*pair)
            if coords is not None:
                return coords
        return None

    def extract_description(self, raw: Mapping, source_name: str, title: str) -> str:
        min_length = self.candidates.get("description_min_length", 0)
        return self.first_string(raw, "description", min_length) or f"{source_name} - {title}"

    def find_start_date(self, raw: Mapping) -> Optional[str]:
        return self.first_string(raw, "start_date")

    def extract_start_date(self, raw: Mapping) -> str:
        return self.find_start_date(raw) or datetime.now(timezone.utc).isoformat()

    def extract_end_date(self, raw: Mapping) -> Optional[str]:
        return self.first_string(raw, "end_date")

    def extract_price(self, raw: Mapping) -> Optional[float]:
        rules = self.candidates.get("price", {})

        flag_values = [v.lower() for v in rules.get("free_flag_values", [])]
        for key in rules.get("free_flags", []):
            value = raw.get(key)
            if value is True or (isinstance(value, str) and value.strip().lower() in flag_values):
                return 0.0

        if self._mentions(raw, rules.get("free_text", []), rules.get("free_text_signals", [])):
            return 0.0

        for key in rules.get("numeric", []):
            value = raw.get(key)
            if is_number(value):
                return float(value)

        for key in rules.get("tariff_text", []):
            value = clean_string(raw.get(key))
            if value:
                match = TARIFF_PATTERN.search(value)
                if match:
                    return float(match.group(1).replace(",", "."))

        if self._mentions(raw, rules.get("conditions", []), rules.get("conditions_signals", [])):
            return 0.0

        # Unknown is not free
        return None

    def _mentions(self, raw: Mapping, keys: list[str], signals: list[str]) -> bool:
        for key in keys:
            text = clean_string(raw.get(key))
            if text and any(signal in text.lower() for signal in signals):
                return True
        return False

    def build_location(self, raw: Mapping) -> str:
        parts = [self.first_string(raw, field) for field in ("venue", "address", "city")]
        return ", ".join(part for part in parts if part)

    def extract_website(self, raw: Mapping) -> Optional[str]:
        return self.first_string(raw, "website")

    def extract_contact_email(self, raw: Mapping) -> Optional[str]:
        return self.first_string(raw, "contact_email")

    def extract_image(self, raw: Mapping) -> Optional[str]:
        return self.first_string(raw, "image")

    def classification_text(self, raw: Mapping) -> str:
        """Free-text classification fields (tags, keywords, type, category), lowercased."""
        chunks = []
        for group in self.candidates.get("classification", []):
            for key in group:
                value = raw.get(key)
                if isinstance(value, list):
                    value = " ".join(str(v) for v in value if isinstance(v, str))
                value = clean_string(value)
                if value:
                    chunks.append(value)
                    break
        return " ".join(chunks).lower()
