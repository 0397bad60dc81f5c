"""Session controller: single-flight, one-shot initial load, states, debug persistence."""
import asyncio

import pytest

from occitanie_hub.core.database import build_engine, build_session_factory, init_db
from occitanie_hub.core.exceptions import UnknownSourceError
from occitanie_hub.services.controller import EMPTY_RESULT_ADVISORY, EventController, LoadStatus
from occitanie_hub.services.preferences import DebugFlagStore
from tests.fakes import FakeAggregator, MemoryDebugStore


def test_initial_state(make_event):
    controller = EventController(FakeAggregator([make_event()]))
    assert controller.status == LoadStatus.IDLE
    assert not controller.loading
    assert controller.events == []
    assert controller.stats is None
    assert controller.last_update is None


def test_refresh_loads_events_and_stats(make_event):
    aggregator = FakeAggregator([make_event(1), make_event(2, price=0)])
    controller = EventController(aggregator)

    assert asyncio.run(controller.refresh_events()) is True
    assert controller.status == LoadStatus.READY
    assert controller.error is None
    assert controller.total_events == 2
    assert controller.stats.free == 1
    assert controller.last_update is not None


def test_single_flight(make_event):
    aggregator = FakeAggregator([make_event()])
    controller = EventController(aggregator)

    async def scenario():
        aggregator.gate = asyncio.Event()
        first = asyncio.create_task(controller.refresh_events())
        await asyncio.sleep(0)
        assert controller.loading

        second = await controller.refresh_events()
        third = controller.trigger_refresh()

        aggregator.gate.set()
        return await first, second, third

    first, second, third = asyncio.run(scenario())
    assert first is True
    assert second is False
    assert third is None
    assert aggregator.calls == 1
    assert controller.status == LoadStatus.READY


def test_initial_load_happens_once(make_event):
    aggregator = FakeAggregator([make_event()])
    controller = EventController(aggregator)

    async def scenario():
        await controller.start(wait=True)
        await controller.start(wait=True)
        await controller.start()

    asyncio.run(scenario())
    assert aggregator.calls == 1


def test_background_initial_load(make_event):
    aggregator = FakeAggregator([make_event()])
    controller = EventController(aggregator)

    async def scenario():
        await controller.start()
        assert controller.loading
        await controller.wait_idle()

    asyncio.run(scenario())
    assert controller.status == LoadStatus.READY
    assert aggregator.calls == 1


def test_stop_cancels_background_load(make_event):
    aggregator = FakeAggregator([make_event()])
    controller = EventController(aggregator)

    async def scenario():
        aggregator.gate = asyncio.Event()
        task = controller.trigger_refresh()
        await asyncio.sleep(0)
        await controller.stop()
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert not controller.loading
    assert controller.events == []


def test_stop_cancels_awaited_refresh(make_event):
    # Scheduler jobs await refresh_events directly instead of trigger_refresh
    aggregator = FakeAggregator([make_event()])
    controller = EventController(aggregator)

    async def scenario():
        aggregator.gate = asyncio.Event()
        job = asyncio.create_task(controller.refresh_events())
        await asyncio.sleep(0)
        assert controller.loading
        await controller.stop()
        return job

    job = asyncio.run(scenario())
    assert job.cancelled()
    assert not controller.loading
    assert controller.status == LoadStatus.IDLE


def test_empty_result_is_an_advisory_not_an_exception():
    controller = EventController(FakeAggregator([]))
    asyncio.run(controller.refresh_events())

    assert controller.status == LoadStatus.ERROR
    assert controller.error == EMPTY_RESULT_ADVISORY
    assert controller.events == []
    assert controller.stats.total == 0


def test_unexpected_error_keeps_previous_events(make_event):
    aggregator = FakeAggregator([make_event(1), make_event(2)])
    controller = EventController(aggregator)
    asyncio.run(controller.refresh_events())

    aggregator.error = RuntimeError("boom")
    asyncio.run(controller.refresh_events())

    assert controller.status == LoadStatus.ERROR
    assert "boom" in controller.error
    assert controller.total_events == 2


def test_refresh_from_error_state(make_event):
    aggregator = FakeAggregator([])
    controller = EventController(aggregator)
    asyncio.run(controller.refresh_events())
    assert controller.status == LoadStatus.ERROR

    aggregator.events = [make_event()]
    asyncio.run(controller.refresh_events())
    assert controller.status == LoadStatus.READY
    assert controller.error is None


def test_mappable_events_are_derived_on_read(make_event):
    aggregator = FakeAggregator([make_event(1), make_event(2, latitude=0.0), make_event(3, longitude=float("nan"))])
    controller = EventController(aggregator)
    asyncio.run(controller.refresh_events())

    assert controller.total_events == 3
    assert [event.id for event in controller.mappable_events] == ["evt-1"]

    view = controller.snapshot()
    assert view.total_events == 3
    assert view.mappable_events == 1
    assert view.status == LoadStatus.READY


def test_debug_toggle_uses_the_store():
    aggregator = FakeAggregator()
    store = MemoryDebugStore()
    controller = EventController(aggregator, store)

    asyncio.run(controller.enable_debug())
    assert aggregator.debug is True
    assert store.enabled is True

    asyncio.run(controller.disable_debug())
    assert aggregator.debug is False
    assert store.enabled is False


def test_debug_flag_is_restored_at_start():
    aggregator = FakeAggregator()
    controller = EventController(aggregator, MemoryDebugStore(enabled=True))
    asyncio.run(controller.start(wait=True))
    assert controller.debug is True


def test_test_api_delegates():
    controller = EventController(FakeAggregator())
    data = asyncio.run(controller.test_api("TOULOUSE_EVENTS"))
    assert data["total_count"] == 1
    with pytest.raises(UnknownSourceError):
        asyncio.run(controller.test_api("NOPE"))


def test_debug_flag_survives_restarts(tmp_path):
    async def scenario():
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'prefs.db'}")
        try:
            await init_db(engine)
            store = DebugFlagStore(build_session_factory(engine))
            assert await store.is_enabled() is False

            await EventController(FakeAggregator(), store).enable_debug()

            restarted = FakeAggregator()
            await EventController(restarted, DebugFlagStore(build_session_factory(engine))).start(wait=True)
            enabled_after_restart = restarted.debug

            await store.set_enabled(False)
            return enabled_after_restart, await store.is_enabled()
        finally:
            await engine.dispose()

    enabled_after_restart, enabled_after_disable = asyncio.run(scenario())
    assert enabled_after_restart is True
    assert enabled_after_disable is False
