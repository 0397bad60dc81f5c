import httpx
from fastapi import APIRouter, Depends, HTTPException

from occitanie_hub.core.exceptions import UnknownSourceError
from occitanie_hub.core.logger import log
from occitanie_hub.routers.dependencies import get_controller
from occitanie_hub.services.controller import EventController

router = APIRouter(tags=["Sources"])


@router.get("/sources")
async def list_sources(controller: EventController = Depends(get_controller)):
    return controller.aggregator.describe_sources()


@router.get("/sources/{source_key}/test")
async def test_source(source_key: str, controller: EventController = Depends(get_controller)):
    """Dumps 5 raw records of one source to map its schema."""
    try:
        return await controller.test_api(source_key)
    except UnknownSourceError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (httpx.HTTPError, ValueError) as e:
        log.error(f"❌ Test of {source_key} failed: {e}")
        raise HTTPException(status_code=502, detail=f"Upstream error: {e}")


@router.post("/debug/enable")
async def enable_debug(controller: EventController = Depends(get_controller)):
    await controller.enable_debug()
    return {"debug": controller.debug}


@router.post("/debug/disable")
async def disable_debug(controller: EventController = Depends(get_controller)):
    await controller.disable_debug()
    return {"debug": controller.debug}
