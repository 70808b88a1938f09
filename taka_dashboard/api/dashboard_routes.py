"""FastAPI application for the waste collection dashboard."""
import asyncio
import os
import sys
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from loguru import logger
from dotenv import load_dotenv

from ..configurations.config import Config
from ..configurations.sites import SiteCatalog
from ..models.collection import FILTER_FIELDS, FilterCriteria
from ..models.errors import CollectionValidationError, RecordStoreError
from ..services import aggregation
from ..services.filter_state import normalize_filter_value
from ..services.map_view import FoliumMapView, directions_url
from ..services.marker_controller import MarkerController
from .collection_endpoints import router as collections_router
from .dependencies import (
    boundary_service,
    close_session,
    get_boundary,
    get_catalog,
    get_record_store,
    start_session,
)
from .session_endpoints import router as session_router

# Load environment variables
load_dotenv()

app = FastAPI(
    title="Taka ni Mali Waste Dashboard",
    description="Geospatial waste collection monitoring for Kakamega Municipality",
    version="1.0.0",
    openapi_tags=[
        {
            "name": "dashboard",
            "description": "Filtered summaries, trends and the site map"
        },
        {
            "name": "sites",
            "description": "Static site catalog and directions"
        },
        {
            "name": "collections",
            "description": "Collector data entry"
        },
        {
            "name": "session",
            "description": "Shared dashboard session with debounced filters and map selection"
        }
    ]
)

app.include_router(collections_router)
app.include_router(session_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def configure_logging():
    logger.remove()
    logger.add(sys.stderr, level=Config.LOG_LEVEL)


@app.on_event("startup")
async def startup_event():
    """Validate configuration, load the boundary overlay once and start the session."""
    configure_logging()
    logger.info("🚀 Starting waste dashboard...")
    Config.validate()
    boundary = await asyncio.to_thread(boundary_service.get_boundary)
    if boundary is None:
        logger.warning("⚠️ Boundary overlay unavailable, base map only")
    start_session(boundary)
    logger.success("✅ Dashboard startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    close_session()
    logger.info("🛑 Dashboard session stopped")


def criteria_from_query(
    siteName: Optional[str] = None,
    wasteType: Optional[str] = None,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    minVolume: Optional[str] = None,
    maxVolume: Optional[str] = None,
    wasteSeparated: Optional[str] = None,
    minCollections: Optional[str] = None,
    minOrganicVolume: Optional[str] = None,
) -> FilterCriteria:
    raw = [siteName, wasteType, startDate, endDate, minVolume, maxVolume,
           wasteSeparated, minCollections, minOrganicVolume]
    return FilterCriteria(**{
        name: normalize_filter_value(name, value) for name, value in zip(FILTER_FIELDS, raw)
    })


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/sites", tags=["sites"])
async def list_sites(catalog: SiteCatalog = Depends(get_catalog)):
    """Static site catalog used for map pins and the data-entry form."""
    return {"sites": [site.to_dict() for site in catalog.values()]}


@app.get("/api/sites/{site_id}/directions", tags=["sites"])
async def site_directions(site_id: str, catalog: SiteCatalog = Depends(get_catalog)):
    site = catalog.get(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail=f"Site {site_id} not found")
    return RedirectResponse(directions_url(site.latitude, site.longitude))


@app.get("/api/dashboard", tags=["dashboard"])
async def dashboard(
    criteria: FilterCriteria = Depends(criteria_from_query),
    store=Depends(get_record_store),
):
    """Summary cards, volume trend and recent records for the given filters."""
    try:
        records = await asyncio.to_thread(store.filtered, criteria)
        summary = aggregation.summarize(records)
        series = aggregation.trend(records)
    except CollectionValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    except RecordStoreError as e:
        raise HTTPException(status_code=502, detail=e.message)

    return JSONResponse({
        "filters": criteria.to_params(),
        "summary": summary.to_dict(),
        "trend": aggregation.trend_frame(series).to_dict(orient="records"),
        "records": aggregation.recent_records(records, Config.RECENT_RECORDS_LIMIT),
        "recordCount": len(records),
    })


@app.get("/api/dashboard/markers", tags=["dashboard"])
async def dashboard_markers(store=Depends(get_record_store)):
    """Aggregated collection markers from the record store."""
    try:
        markers = await asyncio.to_thread(store.dashboard_data)
    except RecordStoreError as e:
        raise HTTPException(status_code=502, detail=e.message)
    return {"markers": [
        {
            "id": m.id,
            "lat": m.latitude,
            "lng": m.longitude,
            "siteName": m.site_name,
            "wasteType": m.waste_type,
            "volume": m.volume,
            "date": m.collection_date.isoformat() if m.collection_date else None,
        }
        for m in markers
    ]}


@app.get("/api/dashboard/map", tags=["dashboard"], response_class=HTMLResponse)
async def dashboard_map(
    site_id: Optional[str] = Query(default=None, description="Site to focus with its popup open"),
    catalog: SiteCatalog = Depends(get_catalog),
    boundary=Depends(get_boundary),
):
    """Render the site map; an unknown site_id renders the overview."""
    view = FoliumMapView(catalog, boundary=boundary)
    if site_id and site_id in catalog:
        controller = MarkerController(view, catalog.markers())
        pending = controller.external_select(catalog[site_id].to_marker())
        if pending is not None:
            await pending
    return HTMLResponse(content=view.render())


@app.get("/")
async def root():
    return HTMLResponse(content="""
    <html>
        <body>
            <h2>🌱 Taka ni Mali Waste Dashboard</h2>
            <h3>Available Endpoints:</h3>
            <ul>
                <li><strong>GET /api/dashboard</strong> - Summary, trend and records for filters</li>
                <li><strong>GET /api/dashboard/map</strong> - Interactive site map (optional site_id)</li>
                <li><strong>GET /api/dashboard/markers</strong> - Collection markers from the record store</li>
                <li><strong>GET /api/session</strong> - Shared session state (POST /filters, /reset, /sites/{site_id}/click)</li>
                <li><strong>GET /api/sites</strong> - Site catalog</li>
                <li><strong>GET /api/sites/{site_id}/directions</strong> - Directions to a site</li>
                <li><strong>POST /api/collections</strong> - Submit a collection (API key required)</li>
            </ul>
            <p><a href="/docs">📚 API Documentation</a></p>
        </body>
    </html>
    """)


def main():
    import uvicorn
    port = int(os.getenv('PORT', Config.PORT))
    uvicorn.run(app, host=Config.API_HOST, port=port)


if __name__ == "__main__":
    main()
