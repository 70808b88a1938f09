"""Map marker controller: selection state, pan and delayed popup."""
import asyncio
from typing import Callable, Dict, Iterable, Optional

from loguru import logger

from ..configurations.config import Config
from ..models.collection import MapMarker
from .map_view import directions_url

IDLE = "idle"
SELECTED = "selected"


class MarkerController:
    """Per-marker-set state machine: idle <-> selected(marker).

    A selection pans the view without blocking, then opens the marker's
    popup once the pan is underway. A newer selection cancels a pending
    popup.
    """

    def __init__(self, view, markers: Iterable[MapMarker] = (),
                 on_select: Optional[Callable[[MapMarker], None]] = None,
                 open_url: Optional[Callable[[str], object]] = None,
                 click_pan_seconds: Optional[float] = None,
                 click_popup_delay_seconds: Optional[float] = None,
                 select_pan_seconds: Optional[float] = None,
                 select_popup_delay_seconds: Optional[float] = None):
        self.view = view
        self.on_select = on_select
        self.open_url = open_url
        self.click_pan_seconds = _pick(click_pan_seconds, Config.CLICK_PAN_SECONDS)
        self.click_popup_delay_seconds = _pick(click_popup_delay_seconds, Config.CLICK_POPUP_DELAY_SECONDS)
        self.select_pan_seconds = _pick(select_pan_seconds, Config.SELECT_PAN_SECONDS)
        self.select_popup_delay_seconds = _pick(select_popup_delay_seconds, Config.SELECT_POPUP_DELAY_SECONDS)
        self._markers: Dict[str, MapMarker] = {}
        self._pending: Optional[asyncio.Task] = None
        self.state = IDLE
        self.selected: Optional[MapMarker] = None
        self.register(markers)

    def register(self, markers: Iterable[MapMarker]):
        """Replace the marker registry (stable id -> marker)."""
        self._markers = {marker.id: marker for marker in markers}

    def lookup(self, marker: MapMarker) -> Optional[MapMarker]:
        found = self._markers.get(marker.id)
        if found is not None:
            return found
        for candidate in self._markers.values():
            if candidate.site_name == marker.site_name:
                return candidate
        return None

    def click(self, marker: MapMarker) -> Optional[asyncio.Task]:
        """User clicked a pin: pin the site filter, pan, then open the popup."""
        target = self.lookup(marker)
        if target is None:
            logger.debug(f"Clicked marker {marker.id} is not rendered")
            return None
        self._cancel_pending()
        self.state = SELECTED
        self.selected = target
        if self.on_select:
            self.on_select(target)
        return self._select(target, self.click_pan_seconds, self.click_popup_delay_seconds)

    def external_select(self, marker: MapMarker) -> Optional[asyncio.Task]:
        """Selection arriving from the dashboard layer rather than a click."""
        target = self.lookup(marker)
        if target is None:
            logger.debug(f"Selected site {marker.site_name} has no rendered marker")
            return None
        return self._select(target, self.select_pan_seconds, self.select_popup_delay_seconds)

    def clear(self):
        self._cancel_pending()
        self.state = IDLE
        self.selected = None
        self.view.close_popup()

    def directions(self, marker: MapMarker) -> str:
        url = directions_url(marker.latitude, marker.longitude)
        if self.open_url:
            self.open_url(url)
        return url

    def _select(self, marker: MapMarker, pan_seconds: float, delay_seconds: float) -> Optional[asyncio.Task]:
        self._cancel_pending()
        self.state = SELECTED
        self.selected = marker
        self.view.pan_to(marker.latitude, marker.longitude, duration=pan_seconds)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.view.open_popup(marker.id)
            return None
        self._pending = loop.create_task(self._open_after(marker, delay_seconds))
        return self._pending

    async def _open_after(self, marker: MapMarker, delay_seconds: float):
        await asyncio.sleep(delay_seconds)
        if self.selected is marker:
            self.view.open_popup(marker.id)

    def _cancel_pending(self):
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None


def _pick(value: Optional[float], default: float) -> float:
    return default if value is None else value
