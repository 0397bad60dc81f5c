"""
Quality standard: Bounded pagination (OpenDataSoft Explore v2.1).
Reason: Portals answer `{results, total_count}` pages driven by limit/offset.
We paginate until a short page, the server total or the per-source cap,
whichever comes first, and keep partial results when a page fails.
"""
import json
from typing import Any

import httpx

from occitanie_hub.core.logger import log
from occitanie_hub.schemas.event import Event
from occitanie_hub.schemas.source import SourceConfig
from occitanie_hub.services.extractors.base import BaseExtractor
from occitanie_hub.services.normalizer import RecordNormalizer

PAGE_SIZE = 100
DEBUG_DUMP_COUNT = 3


def unwrap_record(item: Any) -> tuple[Any, Any]:
    """Explore v1 wraps rows as {record: {fields, geometry}}, v2.1 returns flat rows."""
    if not isinstance(item, dict):
        return item, None
    record = item.get("record") or item
    if not isinstance(record, dict):
        return record, item.get("geometry")
    fields = record.get("fields") or record
    geometry = record.get("geometry") or item.get("geometry")
    return fields, geometry


class OpenDataExtractor(BaseExtractor):
    def __init__(self, client: httpx.AsyncClient, normalizer: RecordNormalizer, page_size: int = PAGE_SIZE):
        super().__init__(client)
        self.normalizer = normalizer
        self.page_size = page_size

    async def fetch_from_api(self, source_key: str, config: SourceConfig) -> list[Event]:
        """Never raises: a failing source returns whatever was gathered so far."""
        events: list[Event] = []
        collected = 0
        offset = 0
        has_more = True

        if self.normalizer.debug:
            log.debug(f"[DEBUG API] Loading: {config.name} (max {config.max_items})")

        try:
            while has_more and collected < config.max_items:
                params = {"limit": self.page_size, "offset": offset, **config.query_params()}
                data = await self.fetch_json(config.url, params)

                if data is None:
                    log.warning(f"⚠️ {config.name}: pagination stopped at offset {offset}, keeping {len(events)} events")
                    break
                if not isinstance(data, dict):
                    log.warning(f"⚠️ {config.name}: unexpected payload {type(data).__name__}")
                    break

                results = data.get("results") or []
                if not isinstance(results, list) or not results:
                    break

                if self.normalizer.debug and collected == 0:
                    for item in results[:DEBUG_DUMP_COUNT]:
                        log.debug(f"[DEBUG] Item structure ({config.name}): {json.dumps(item, ensure_ascii=False, indent=2)}")

                collected += len(results)
                events.extend(self.transform_page(results, source_key, config))

                total = data.get("total_count")
                if not isinstance(total, int) or isinstance(total, bool) or total <= 0:
                    total = config.max_items
                has_more = (
                    len(results) == self.page_size
                    and collected < total
                    and collected < config.max_items
                )
                offset += self.page_size

                if self.normalizer.debug:
                    log.debug(f"[DEBUG API] {config.name}: {collected}/{min(total, config.max_items)} fetched")

                # Backstop on request volume, independent of has_more
                if offset > config.max_items:
                    log.warning(f"⚠️ Forced stop for {config.name} at {collected} records")
                    break
        except Exception as e:
            log.warning(f"❌ Error {config.name}: {e}")

        return events

    def transform_page(self, results: list, source_key: str, config: SourceConfig) -> list[Event]:
        events = []
        for item in results:
            fields, geometry = unwrap_record(item)
            event = self.normalizer.normalize(fields, geometry, config.category, config.name, source_key)
            if event is not None:
                events.append(event)

        if self.normalizer.debug:
            log.debug(f"[DEBUG API] {config.name}: {len(events)}/{len(results)} records transformed")
        return events

    async def inspect_source(self, config: SourceConfig, limit: int = 5) -> dict:
        """Raw diagnostic fetch used to map the schema of a new source. Raises on failure."""
        log.info(f"Test: {config.name}")
        log.info(f"URL: {config.url}")

        response = await self.client.get(config.url, params={"limit": limit})
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"{config.name}: unexpected payload {type(data).__name__}")

        results = data.get("results") or []
        log.info(f"Response: status={response.status_code} total_count={data.get('total_count')} results={len(results)}")
        if results:
            log.info(f"First result structure:\n{json.dumps(results[0], ensure_ascii=False, indent=2)}")
        return data
