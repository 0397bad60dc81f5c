"""
Source inspection utility.
Rationale: Dump the first raw records of one portal to map its field names
before adding them to field_candidates.json.
"""
import argparse
import asyncio
import json
import sys

import httpx

from occitanie_hub.core.config import settings
from occitanie_hub.core.exceptions import UnknownSourceError
from occitanie_hub.services.extractors.base import build_http_client
from occitanie_hub.services.manager import EventAggregator


async def inspect(source_key: str, limit: int) -> int:
    async with build_http_client(timeout=settings.http_timeout) as client:
        aggregator = EventAggregator.from_settings(settings, client)
        try:
            data = await aggregator.test_api(source_key, limit=limit)
        except UnknownSourceError as e:
            print(f"❌ {e}. Available: {', '.join(aggregator.sources)}")
            return 1
        except (httpx.HTTPError, ValueError) as e:
            print(f"❌ Error: {e}")
            return 1

    for i, record in enumerate(data.get("results") or [], 1):
        print(f"🟢 RECORD [{i}]")
        print(json.dumps(record, ensure_ascii=False, indent=2))
        print("-" * 50)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dump raw records from one configured source")
    parser.add_argument("source_key", help="e.g. TOULOUSE_EVENTS")
    parser.add_argument("--limit", type=int, default=5)
    args = parser.parse_args()
    sys.exit(asyncio.run(inspect(args.source_key, args.limit)))
