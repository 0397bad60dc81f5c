import asyncio

from occitanie_hub.core.scheduler import JOB_ID, scheduler, start_scheduler, stop_scheduler
from occitanie_hub.services.controller import EventController
from tests.fakes import FakeAggregator


def test_no_cron_no_job():
    assert start_scheduler(EventController(FakeAggregator()), None) is False
    assert scheduler.get_job(JOB_ID) is None


def test_cron_schedules_refresh():
    controller = EventController(FakeAggregator())

    async def scenario():
        try:
            assert start_scheduler(controller, "0 3 * * *") is True
            job = scheduler.get_job(JOB_ID)
            return job.func, str(job.trigger)
        finally:
            scheduler.remove_all_jobs()
            stop_scheduler()

    func, trigger = asyncio.run(scenario())
    assert func == controller.refresh_events
    assert "hour='3'" in trigger
