"""
Query parameter handling shared by the dashboard routers.
"""
from typing import Optional
from fastapi import Query, Request
from faultline.stores import Page, SORT_ASC, SORT_DESC
from faultline.timeutil import seconds_to_milliseconds


def page_params(
    request: Request,
    limit: Optional[int] = Query(None, description="Items per page"),
    offset: Optional[int] = Query(None, description="Offset for pagination"),
    sort: Optional[str] = Query(None, description="Sort order (asc or desc)"),
) -> Page:
    """
    Build a Page from query parameters. Out-of-range values fall back to defaults.
    """
    settings = request.app.state.settings
    if limit is None or limit < 1:
        limit = settings.DEFAULT_PAGE_LIMIT
    limit = min(limit, settings.MAX_PAGE_LIMIT)
    if offset is None or offset < 0:
        offset = 0
    if sort not in (SORT_ASC, SORT_DESC):
        sort = SORT_DESC
    return Page(limit=limit, offset=offset, sort=sort)


def seconds_to_ms(value: Optional[int]) -> Optional[int]:
    """Dashboard time filters are passed in seconds; storage uses milliseconds."""
    if value is None or value < 0:
        return None
    return seconds_to_milliseconds(value)
