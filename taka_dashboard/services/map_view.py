"""Folium map view for the dashboard: site pins, popups, boundary outline."""
import html
from typing import Any, Callable, Dict, List, Optional, Tuple

import folium
from loguru import logger

from ..configurations.config import Config
from ..configurations.sites import SiteCatalog
from ..models.collection import SiteLocation


def directions_url(latitude: float, longitude: float, base_url: Optional[str] = None) -> str:
    """External map-directions link to a coordinate."""
    return f"{base_url or Config.DIRECTIONS_BASE_URL}{latitude},{longitude}"


def render_site_detail(site: SiteLocation, directions_for: Callable[[float, float], str]) -> str:
    """Popup HTML for a site. The directions link comes from `directions_for`."""
    name = html.escape(site.name)
    image = ""
    if site.image:
        image = (f'<img src="{html.escape(site.image)}" alt="{name}" '
                 f'style="margin-top:10px;max-width:100%;border-radius:4px;">')
    link = html.escape(directions_for(site.latitude, site.longitude))
    return f"""
        <div style="font-family:Arial,sans-serif;max-width:300px;">
          <h3 style="margin:0 0 10px;font-size:16px;">{name}</h3>
          <p><strong>Category:</strong> {html.escape(site.category.label)}</p>
          <p><strong>Status:</strong> {html.escape(site.status)}</p>
          <p><strong>Description:</strong> {html.escape(site.description)}</p>
          <p><strong>Challenges:</strong> {html.escape(site.challenges)}</p>
          {image}
          <a href="{link}" target="_blank" rel="noopener"
             style="display:inline-block;margin-top:10px;padding:6px 10px;background-color:#007bff;color:white;border-radius:4px;text-decoration:none;">Get Directions</a>
        </div>"""


def _pin_icon(color: str) -> folium.DivIcon:
    return folium.DivIcon(
        html=(f'<div style="background-color: {color}; width: 30px; height: 30px; border-radius: 50%; '
              f'display:flex;align-items:center;justify-content:center;'
              f'box-shadow:0 2px 5px rgba(0,0,0,0.3);font-size:18px;">📍</div>'),
        icon_size=(30, 30),
        icon_anchor=(15, 30),
        popup_anchor=(0, -30),
        class_name="custom-marker",
    )


class FoliumMapView:
    """Map widget driven by the marker controller.

    Pans and popups only change the view state; render() produces the
    HTML for the current state. Opening a popup closes the previous one.
    """

    def __init__(self, catalog: SiteCatalog, boundary: Optional[Dict[str, Any]] = None,
                 directions_for: Callable[[float, float], str] = directions_url):
        self.catalog = catalog
        self.boundary = boundary
        self.directions_for = directions_for
        self.center: Optional[Tuple[float, float]] = None
        self.last_pan_duration: Optional[float] = None
        self.open_popup_id: Optional[str] = None

    def bounds(self) -> List[List[float]]:
        lats = [site.latitude for site in self.catalog.values()]
        lons = [site.longitude for site in self.catalog.values()]
        return [[min(lats), min(lons)], [max(lats), max(lons)]]

    def pan_to(self, latitude: float, longitude: float, duration: float):
        self.center = (latitude, longitude)
        self.last_pan_duration = duration
        logger.debug(f"Panning map to {latitude},{longitude} over {duration}s")

    def open_popup(self, marker_id: str):
        if marker_id not in self.catalog:
            logger.debug(f"No popup for marker {marker_id}")
            return
        if self.open_popup_id and self.open_popup_id != marker_id:
            self.close_popup()
        self.open_popup_id = marker_id

    def close_popup(self):
        self.open_popup_id = None

    def build(self) -> folium.Map:
        (south, west), (north, east) = self.bounds()
        location = self.center or ((south + north) / 2, (west + east) / 2)
        m = folium.Map(location=list(location), zoom_start=13, tiles=Config.MAP_TILES,
                       control_scale=True, max_zoom=19)

        if self.boundary:
            folium.GeoJson(
                self.boundary,
                name="County Boundary",
                style_function=lambda x: {
                    'color': 'black',
                    'weight': 2,
                    'opacity': 1,
                    'fillOpacity': 0
                },
                interactive=False,
            ).add_to(m)

        for site in self.catalog.values():
            folium.Marker(
                [site.latitude, site.longitude],
                icon=_pin_icon(site.category.color),
                tooltip=site.name,
                popup=folium.Popup(
                    render_site_detail(site, self.directions_for),
                    max_width=300,
                    show=site.id == self.open_popup_id,
                ),
            ).add_to(m)

        if self.center is None:
            pad = Config.MAP_FIT_PADDING
            m.fit_bounds(self.bounds(), padding=(pad, pad))
        return m

    def render(self) -> str:
        return self.build().get_root().render()
