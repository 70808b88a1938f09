"""API endpoints for the shared, stateful dashboard session."""
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse
from loguru import logger
from pydantic import BaseModel

from ..models.collection import FILTER_FIELDS, MapMarker
from ..services.dashboard_session import DashboardSession
from .dependencies import get_session

router = APIRouter(prefix="/api/session", tags=["session"])


class FilterEdit(BaseModel):
    field: str
    value: Optional[Union[bool, int, float, str]] = None


def _site_marker(session: DashboardSession, site_id: str) -> MapMarker:
    site = session.catalog.get(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail=f"Site {site_id} not found")
    return site.to_marker()


@router.get("")
async def session_state(session: DashboardSession = Depends(get_session)):
    """Current filters, summary, trend, records, selection and error banner."""
    return session.view_model()


@router.post("/filters")
async def edit_filter(edit: FilterEdit, session: DashboardSession = Depends(get_session)):
    """
    Apply one filter edit; the query runs once edits pause.

    - **field**: one of site_name, waste_type, start_date, end_date,
      min_volume, max_volume, waste_separated, min_collections,
      min_organic_volume
    - **value**: raw form value; blank or unparseable clears the filter
    """
    if edit.field not in FILTER_FIELDS:
        raise HTTPException(status_code=422, detail=f"Unknown filter field: {edit.field}")
    session.filters.update(edit.field, edit.value)
    return session.view_model()


@router.post("/reset")
async def reset_filters(session: DashboardSession = Depends(get_session)):
    session.filters.reset()
    return session.view_model()


@router.post("/sites/{site_id}/click")
async def click_site(site_id: str, session: DashboardSession = Depends(get_session)):
    """Marker click: pins the site filter, pans, and opens the popup shortly after."""
    session.markers.click(_site_marker(session, site_id))
    return session.view_model()


@router.post("/sites/{site_id}/select")
async def select_site(site_id: str, session: DashboardSession = Depends(get_session)):
    """Select a site from outside the map."""
    session.select_site(_site_marker(session, site_id))
    return session.view_model()


@router.get("/sites/{site_id}/directions")
async def site_directions(site_id: str, session: DashboardSession = Depends(get_session)):
    url = session.markers.directions(_site_marker(session, site_id))
    logger.debug(f"Directions requested for {site_id}")
    return RedirectResponse(url)


@router.delete("/error")
async def dismiss_error(session: DashboardSession = Depends(get_session)):
    session.dismiss_error()
    return session.view_model()


@router.get("/map", response_class=HTMLResponse)
async def session_map(session: DashboardSession = Depends(get_session)):
    """Map in its current state: last pan target and open popup."""
    return HTMLResponse(content=session.view.render())
