"""
Quality standard: Resilient fan-out.
Reason: Every configured source is fetched concurrently and the run waits for
all of them to settle. One portal going down only means fewer events.
"""
import asyncio
from typing import Iterable, Sequence

import httpx

from occitanie_hub.core.config import Settings
from occitanie_hub.core.exceptions import UnknownSourceError
from occitanie_hub.core.logger import log
from occitanie_hub.schemas.event import AggregationStats, BoundingBox, Event
from occitanie_hub.schemas.source import SourceConfig, load_sources
from occitanie_hub.services.extractors.fields import FieldExtractor
from occitanie_hub.services.extractors.opendata import PAGE_SIZE, OpenDataExtractor
from occitanie_hub.services.normalizer import RecordNormalizer


def get_event_stats(events: Iterable[Event]) -> AggregationStats:
    """Single pass over a finished event list. No I/O."""
    stats = AggregationStats()
    for event in events:
        stats.total += 1
        category = event.category.value
        stats.by_category[category] = stats.by_category.get(category, 0) + 1
        stats.by_cities[event.city] = stats.by_cities.get(event.city, 0) + 1
        stats.by_source[event.organizer] = stats.by_source.get(event.organizer, 0) + 1

        if event.price == 0:
            stats.free += 1
        elif event.price is not None and event.price > 0:
            stats.paid += 1
    return stats


def deduplicate_events(events: Iterable[Event]) -> list[Event]:
    """Keeps the first occurrence of each physical event (same title, day and city)."""
    seen = set()
    unique = []
    for event in events:
        if event.dedupe_key in seen:
            continue
        seen.add(event.dedupe_key)
        unique.append(event)
    return unique


class EventAggregator:
    def __init__(
        self,
        sources: Sequence[SourceConfig],
        client: httpx.AsyncClient,
        normalizer: RecordNormalizer,
        page_size: int = PAGE_SIZE,
        deduplicate: bool = False,
    ):
        self.sources = {source.key: source for source in sources}
        self.normalizer = normalizer
        self.fetcher = OpenDataExtractor(client, normalizer, page_size=page_size)
        self.deduplicate = deduplicate

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient) -> "EventAggregator":
        normalizer = RecordNormalizer(
            FieldExtractor.from_file(settings.field_candidates_file),
            bounding_box=BoundingBox(
                min_lat=settings.bbox_min_lat,
                max_lat=settings.bbox_max_lat,
                min_lon=settings.bbox_min_lon,
                max_lon=settings.bbox_max_lon,
            ),
            reject_missing_start_date=settings.reject_missing_start_date,
        )
        return cls(
            load_sources(settings.sources_file),
            client,
            normalizer,
            page_size=settings.page_size,
            deduplicate=settings.deduplicate,
        )

    @property
    def debug(self) -> bool:
        return self.normalizer.debug

    @debug.setter
    def debug(self, enabled: bool):
        self.normalizer.debug = enabled

    def get_source(self, source_key: str) -> SourceConfig:
        try:
            return self.sources[source_key]
        except KeyError:
            raise UnknownSourceError(source_key) from None

    async def fetch_all_events(self) -> list[Event]:
        log.info(f"🚀 Loading events from {len(self.sources)} sources...")
        self.normalizer.begin_run()

        results = await asyncio.gather(
            *(self.fetcher.fetch_from_api(key, config) for key, config in self.sources.items()),
            return_exceptions=True,
        )

        all_events: list[Event] = []
        contributed = 0
        for config, result in zip(self.sources.values(), results):
            if isinstance(result, BaseException):
                log.warning(f"❌ {config.name}: {result}")
                continue
            if not result:
                log.warning(f"⚠️ {config.name}: 0 events.")
                continue
            contributed += 1
            all_events.extend(result)
            log.info(f"✅ {config.name}: {len(result)} events")

        if self.deduplicate:
            before = len(all_events)
            all_events = deduplicate_events(all_events)
            log.info(f"🧹 Deduplication: {before - len(all_events)} duplicates removed")

        log.info(f"✨ Total: {len(all_events)} events available ({contributed}/{len(self.sources)} sources contributed)")
        return all_events

    def get_event_stats(self, events: Iterable[Event]) -> AggregationStats:
        return get_event_stats(events)

    async def test_api(self, source_key: str, limit: int = 5) -> dict:
        return await self.fetcher.inspect_source(self.get_source(source_key), limit=limit)

    def describe_sources(self) -> list[dict]:
        return [source.model_dump(mode="json") for source in self.sources.values()]
