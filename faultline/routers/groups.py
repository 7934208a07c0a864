"""
Dashboard endpoints for groups.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from faultline.kinds import EventKind
from faultline.routers.common import page_params, seconds_to_ms
from faultline.schemas import EntityList, GroupStatusUpdate
from faultline.services import GroupService
from faultline.stores import GroupFilter, Page


def build_groups_router(kind: EventKind, prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[f"{kind.name} groups"])
    group_schema = kind.group_schema

    def get_service(request: Request) -> GroupService:
        return request.app.state.groups[kind.name]

    @router.get("", response_model=EntityList[group_schema])
    async def list_groups(
        project_id: Optional[str] = Query(None, alias="projectId"),
        time_from: Optional[int] = Query(None, alias="timeFrom", description="Last seen from, seconds"),
        time_to: Optional[int] = Query(None, alias="timeTo", description="Last seen to, seconds"),
        search: Optional[str] = Query(None, description="Search in message field"),
        level: Optional[str] = Query(None, description="Level filter (log groups only)"),
        page: Page = Depends(page_params),
        service: GroupService = Depends(get_service),
    ):
        flt = GroupFilter(
            project_id=project_id,
            time_from=seconds_to_ms(time_from),
            time_to=seconds_to_ms(time_to),
            search=search,
            level=level,
        )
        items, total = await service.get_all(flt, page)
        return {"count": total, "items": items}

    @router.get("/{group_id}", response_model=group_schema)
    async def get_group(group_id: str, service: GroupService = Depends(get_service)):
        return await service.get_by_id(group_id)

    @router.patch("/{group_id}/status", response_model=group_schema)
    async def set_group_status(
        group_id: str,
        payload: GroupStatusUpdate,
        service: GroupService = Depends(get_service),
    ):
        """
        Triage a group: unresolved, resolved or ignored.
        """
        return await service.set_status(group_id, payload.status)

    return router
