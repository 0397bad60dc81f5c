"""
Quality standard: Declarative source registry.
Reason: Adding an open-data API must be a data change (sources.json), not a code change.
"""
import json
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from occitanie_hub.core.exceptions import SourceConfigError
from occitanie_hub.schemas.event import Category


class SourceConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    url: str
    category: Category
    name: str
    max_items: int = Field(gt=0)
    where: Optional[str] = None
    refine: Optional[str] = None

    def query_params(self, today: Optional[date] = None) -> dict[str, str]:
        """Source-specific refinements added to every page request."""
        today = today or date.today()
        params = {}
        if self.where:
            params["where"] = self.where.replace("{today}", today.isoformat())
        if self.refine:
            params["refine"] = self.refine
        return params


def load_sources(path: Path) -> list[SourceConfig]:
    """Reads the source registry, keeping the declaration order."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise SourceConfigError(f"Unable to read sources file {path}: {e}") from e

    if not isinstance(raw, dict):
        raise SourceConfigError(f"{path}: expected an object keyed by source identifier")

    sources = []
    for key, entry in raw.items():
        try:
            sources.append(SourceConfig(key=key, **entry))
        except (TypeError, ValidationError) as e:
            raise SourceConfigError(f"{path}: invalid source '{key}': {e}") from e
    return sources
