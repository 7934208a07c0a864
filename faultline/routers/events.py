"""
Dashboard endpoints for events (errors and logs).

Both event kinds expose the same routes, so the router is built per kind.
"""
from typing import Optional, Type
from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel
from faultline.kinds import EventKind
from faultline.routers.common import page_params, seconds_to_ms
from faultline.schemas import EntityList, StatsResponse
from faultline.services import IngestionService
from faultline.stores import EventFilter, Page


def build_events_router(kind: EventKind, prefix: str, update_schema: Type[BaseModel]) -> APIRouter:
    """
    Create the /v1/<kind>s router.

    Args:
        kind: Event kind served by the router
        prefix: URL prefix, e.g. "/v1/errors"
        update_schema: Request body schema of PUT /{id}
    """
    router = APIRouter(prefix=prefix, tags=[f"{kind.name}s"])
    entity_schema = kind.entity_schema

    def get_service(request: Request) -> IngestionService:
        return request.app.state.ingestion[kind.name]

    @router.get("", response_model=EntityList[entity_schema])
    async def list_events(
        project_id: Optional[str] = Query(None, alias="projectId"),
        group_id: Optional[str] = Query(None, alias="groupId"),
        time_from: Optional[int] = Query(None, alias="timeFrom", description="Seconds since epoch"),
        time_to: Optional[int] = Query(None, alias="timeTo", description="Seconds since epoch"),
        search: Optional[str] = Query(None, description="Search in message field"),
        level: Optional[str] = Query(None, description="Level filter (logs only)"),
        page: Page = Depends(page_params),
        service: IngestionService = Depends(get_service),
    ):
        flt = EventFilter(
            project_id=project_id,
            fingerprint=group_id,
            time_from=seconds_to_ms(time_from),
            time_to=seconds_to_ms(time_to),
            search=search,
            level=level,
        )
        items, total = await service.get_all(flt, page)
        return {"count": total, "items": items}

    @router.get("/stats", response_model=StatsResponse)
    async def get_stats(
        project_id: Optional[str] = Query(None, alias="projectId"),
        group_id: Optional[str] = Query(None, alias="groupId"),
        service: IngestionService = Depends(get_service),
    ):
        return await service.get_stats(project_id, group_id)

    @router.get("/{event_id}", response_model=entity_schema)
    async def get_event(event_id: str, service: IngestionService = Depends(get_service)):
        return await service.get_by_id(event_id)

    @router.put("/{event_id}", response_model=entity_schema)
    async def update_event(
        event_id: str,
        payload: update_schema,
        service: IngestionService = Depends(get_service),
    ):
        return await service.update(event_id, payload)

    @router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_event(event_id: str, service: IngestionService = Depends(get_service)):
        await service.delete(event_id)

    return router
