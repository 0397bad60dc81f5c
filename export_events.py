"""
Export utility v1.0
Rationale: Run one aggregation outside the web server and write the result
(events + stats) to a JSON file that can be served statically.
"""
import argparse
import asyncio
import json
from pathlib import Path

from occitanie_hub.core.config import settings
from occitanie_hub.services.extractors.base import build_http_client
from occitanie_hub.services.manager import EventAggregator


async def export(out_path: Path):
    async with build_http_client(timeout=settings.http_timeout) as client:
        aggregator = EventAggregator.from_settings(settings, client)
        events = await aggregator.fetch_all_events()

    payload = {
        "total": len(events),
        "stats": aggregator.get_event_stats(events).model_dump(),
        "events": [event.model_dump(mode="json") for event in events],
    }
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"✅ {len(events)} events written to: {out_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Aggregate every source and export the events as JSON")
    parser.add_argument("--out", type=Path, default=Path("data/export_events.json"))
    args = parser.parse_args()
    asyncio.run(export(args.out))
