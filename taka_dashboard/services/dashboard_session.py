"""Dashboard session: wires filters, record store, pipeline and map."""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from ..configurations.config import Config
from ..configurations.sites import SiteCatalog
from ..models.collection import CollectionRecord, FilterCriteria, MapMarker
from ..models.errors import CollectionValidationError
from . import aggregation
from .filter_state import FilterStateHolder
from .map_view import FoliumMapView
from .marker_controller import MarkerController


class DashboardSession:
    """State behind one dashboard view.

    Filter edits reach the store through the debounced holder; results run
    through the aggregation pipeline. Errors land in a dismissible banner.
    """

    def __init__(self, store, catalog: SiteCatalog, boundary: Optional[Dict[str, Any]] = None,
                 scheduler: Optional[AsyncIOScheduler] = None,
                 debounce_seconds: Optional[float] = None, open_url=None, **timings):
        self.store = store
        self.catalog = catalog
        self.view = FoliumMapView(catalog, boundary=boundary)
        self.filters = FilterStateHolder(
            query=store.filtered,
            debounce_seconds=debounce_seconds,
            scheduler=scheduler,
            on_results=self._apply_results,
            on_error=self._show_error,
            on_selection_change=self._selection_changed,
        )
        self.markers = MarkerController(
            self.view,
            catalog.markers(),
            on_select=self.filters.select_site,
            open_url=open_url,
            **timings,
        )
        self.records: List[CollectionRecord] = []
        self.summary = aggregation.Summary()
        self.trend: Dict[str, Decimal] = {}
        self.error: Optional[str] = None
        self.loading = True

    def start(self):
        self.filters.start()
        self.filters.reset()

    def shutdown(self):
        self.filters.shutdown()
        self.markers.clear()

    def select_site(self, marker: MapMarker):
        """Pin a site from outside the map (e.g. a known target marker)."""
        self.filters.select_site(marker)

    def dismiss_error(self):
        self.error = None

    def _apply_results(self, criteria: FilterCriteria, records: List[CollectionRecord]):
        try:
            summary = aggregation.summarize(records)
            series = aggregation.trend(records)
        except CollectionValidationError as e:
            self._show_error(str(e))
            return
        self.records = records
        self.summary = summary
        self.trend = series
        self.loading = False
        self.error = None
        logger.info(f"Dashboard updated: {summary.total_records} records, {summary.total_volume} tons")

    def _show_error(self, message: str):
        self.loading = False
        self.error = message

    def _selection_changed(self, marker: Optional[MapMarker]):
        if marker is None or self.markers.lookup(marker) is None:
            # the previous popup no longer matches the pinned site
            self.markers.clear()
        elif self.markers.selected is None or self.markers.selected.id != marker.id:
            self.markers.external_select(marker)

    def view_model(self) -> Dict[str, Any]:
        selected = self.filters.selection
        return {
            "loading": self.loading,
            "error": self.error,
            "filters": self.filters.criteria.to_params(),
            "summary": self.summary.to_dict(),
            "trend": aggregation.trend_frame(self.trend).to_dict(orient="records"),
            "records": aggregation.recent_records(self.records, Config.RECENT_RECORDS_LIMIT),
            "recordCount": len(self.records),
            "selectedSite": selected.site_name if selected else None,
            "openPopup": self.view.open_popup_id,
        }
