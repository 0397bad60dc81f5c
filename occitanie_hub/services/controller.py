"""
Quality standard: Single-flight session controller.
Reason: The presentation layer may ask for a refresh many times in a row.
Only one aggregation run may hit the upstream portals at a time, the first
load happens exactly once, and the last results (even partial) stay readable.
"""
import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from occitanie_hub.core.logger import log
from occitanie_hub.schemas.event import AggregationStats, Event
from occitanie_hub.services.manager import EventAggregator, get_event_stats
from occitanie_hub.services.preferences import DebugFlagStore

EMPTY_RESULT_ADVISORY = "Aucun événement trouvé. Vérifiez les logs de debug."


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class EventsView(BaseModel):
    """What the presentation layer reads."""
    status: LoadStatus
    loading: bool
    error: Optional[str] = None
    last_update: Optional[datetime] = None
    stats: Optional[AggregationStats] = None
    total_events: int = 0
    mappable_events: int = 0
    debug: bool = False


class EventController:
    def __init__(self, aggregator: EventAggregator, debug_store: Optional[DebugFlagStore] = None):
        self.aggregator = aggregator
        self.debug_store = debug_store
        self._status = LoadStatus.IDLE
        self._events: list[Event] = []
        self._error: Optional[str] = None
        self._last_update: Optional[datetime] = None
        self._in_flight = False
        self._initial_load_done = False
        self._tasks: set[asyncio.Task] = set()

    # ── Lifecycle ──

    async def start(self, wait: bool = False):
        """Reads the persisted debug flag and triggers the initial load (once per controller)."""
        if self.debug_store is not None:
            self.aggregator.debug = await self.debug_store.is_enabled()
            if self.aggregator.debug:
                log.info("🐞 Debug mode restored from preferences")

        if self._initial_load_done:
            return
        self._initial_load_done = True

        if wait:
            await self.refresh_events()
        else:
            self.trigger_refresh()

    def _try_begin(self) -> bool:
        # No await between the check and the set: atomic on the event loop
        if self._in_flight:
            log.info("⏳ Load already in progress, ignored")
            return False
        self._in_flight = True
        self._status = LoadStatus.LOADING
        self._error = None
        return True

    async def _run_load(self):
        try:
            log.info("📡 Loading events...")
            events = await self.aggregator.fetch_all_events()
        except Exception as e:
            log.exception(f"❌ Error while loading events: {e}")
            self._error = f"Erreur: {e}"
            self._status = LoadStatus.ERROR
        else:
            self._events = events
            self._last_update = datetime.now(timezone.utc)
            if not events:
                self._error = EMPTY_RESULT_ADVISORY
                self._status = LoadStatus.ERROR
            else:
                self._status = LoadStatus.READY
                stats = get_event_stats(events)
                log.info(f"✅ {len(events)} events loaded")
                log.info(f"By category: {stats.by_category}")
                log.info(f"By source: {stats.by_source}")
        finally:
            self._in_flight = False
            if self._status == LoadStatus.LOADING:
                # Cancelled mid-run
                self._status = LoadStatus.READY if self._events else LoadStatus.IDLE

    async def refresh_events(self) -> bool:
        """Runs an aggregation unless one is already in flight. Returns whether it ran."""
        if not self._try_begin():
            return False
        # Tracked like trigger_refresh runs (scheduler jobs, background tasks) so stop() reaches them
        task = asyncio.current_task()
        self._tasks.add(task)
        try:
            await self._run_load()
        finally:
            self._tasks.discard(task)
        return True

    def trigger_refresh(self) -> Optional[asyncio.Task]:
        """Fire-and-forget variant of refresh_events, for HTTP handlers and the scheduler."""
        if not self._try_begin():
            return None
        task = asyncio.create_task(self._run_load())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self):
        if self._tasks:
            await asyncio.gather(*self._tasks)

    async def stop(self):
        """Cancels background loads still running at shutdown."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    # ── Debug ──

    async def enable_debug(self):
        self.aggregator.debug = True
        if self.debug_store is not None:
            await self.debug_store.set_enabled(True)
        log.info("🐞 Debug enabled")

    async def disable_debug(self):
        self.aggregator.debug = False
        if self.debug_store is not None:
            await self.debug_store.set_enabled(False)
        log.info("Debug disabled")

    async def test_api(self, source_key: str) -> dict:
        return await self.aggregator.test_api(source_key)

    # ── Read-only view ──

    @property
    def status(self) -> LoadStatus:
        return self._status

    @property
    def loading(self) -> bool:
        return self._status == LoadStatus.LOADING

    @property
    def debug(self) -> bool:
        return self.aggregator.debug

    @property
    def events(self) -> list[Event]:
        return list(self._events)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def last_update(self) -> Optional[datetime]:
        return self._last_update

    @property
    def stats(self) -> Optional[AggregationStats]:
        if self._last_update is None:
            return None
        return get_event_stats(self._events)

    @property
    def total_events(self) -> int:
        return len(self._events)

    @property
    def mappable_events(self) -> list[Event]:
        return [event for event in self._events if event.is_mappable]

    def snapshot(self) -> EventsView:
        return EventsView(
            status=self.status,
            loading=self.loading,
            error=self.error,
            last_update=self.last_update,
            stats=self.stats,
            total_events=self.total_events,
            mappable_events=len(self.mappable_events),
            debug=self.debug,
        )
