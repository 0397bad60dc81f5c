"""
Quality standard: Explicit service wiring.
Reason: The aggregator and its controller are built once at startup and
handed to the routes, instead of living in a lazily created module global.
"""
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from occitanie_hub.core.config import settings
from occitanie_hub.core.database import init_db
from occitanie_hub.core.logger import log
from occitanie_hub.core.scheduler import start_scheduler, stop_scheduler
from occitanie_hub.routers import events, sources
from occitanie_hub.routers.dependencies import get_controller
from occitanie_hub.services.controller import EventController
from occitanie_hub.services.extractors.base import build_http_client
from occitanie_hub.services.manager import EventAggregator
from occitanie_hub.services.preferences import DebugFlagStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("🚀 Starting Occitanie Event Hub...")
    await init_db()

    client = build_http_client(timeout=settings.http_timeout)
    aggregator = EventAggregator.from_settings(settings, client)
    controller = EventController(aggregator, DebugFlagStore())
    app.state.controller = controller
    await controller.start()

    try:
        start_scheduler(controller, settings.refresh_cron)
    except Exception as e:
        log.error(f"❌ Failed to start the scheduler: {e}")

    yield

    stop_scheduler()
    await controller.stop()
    await client.aclose()
    log.info("Occitanie Event Hub stopped.")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Occitanie Event Hub",
        description="Cultural events aggregated from the Occitanie open-data portals",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(events.router)
    app.include_router(sources.router)

    @app.get("/")
    async def read_root(controller: EventController = Depends(get_controller)):
        """Session summary: loading state, counters and stats."""
        return controller.snapshot()

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("occitanie_hub.main:app", host=settings.api_host, port=settings.api_port, reload=True, log_config=None)
