"""Service for loading the county boundary overlay."""
import os
from typing import Any, Dict, Optional

import geopandas as gpd
import requests
from loguru import logger

from ..configurations.config import Config


class BoundaryService:
    """Fetches the boundary GeoJSON once; later calls reuse the result.

    Any failure is logged and yields None so the base map still renders.
    """

    def __init__(self, source: Optional[str] = None, timeout: Optional[float] = None):
        self.source = source if source is not None else Config.BOUNDARY_GEOJSON_SOURCE
        self.timeout = timeout or Config.REQUEST_TIMEOUT_SECONDS
        self._loaded = False
        self._boundary: Optional[Dict[str, Any]] = None

    def get_boundary(self) -> Optional[Dict[str, Any]]:
        if not self._loaded:
            self._boundary = self._load()
            self._loaded = True
        return self._boundary

    def _load(self) -> Optional[Dict[str, Any]]:
        if not self.source:
            logger.info("No boundary source configured")
            return None
        try:
            if self.source.startswith(("http://", "https://")):
                gdf = self._fetch_remote()
            elif os.path.exists(self.source):
                gdf = gpd.read_file(self.source)
            else:
                logger.warning(f"Boundary file not found: {self.source}")
                return None

            if gdf is None or gdf.empty:
                logger.warning(f"Boundary source {self.source} has no features")
                return None

            # Leaflet expects WGS84
            if gdf.crs is not None and gdf.crs != 'EPSG:4326':
                gdf = gdf.to_crs('EPSG:4326')

            boundary = gdf[['geometry']].__geo_interface__
            logger.success(f"Loaded boundary with {len(boundary['features'])} features")
            return boundary
        except Exception as e:
            logger.warning(f"Could not load boundary from {self.source}: {e}")
            return None

    def _fetch_remote(self) -> Optional[gpd.GeoDataFrame]:
        logger.info(f"Fetching boundary: {self.source}")
        response = requests.get(self.source, timeout=self.timeout)
        if response.status_code != 200:
            logger.warning(f"Boundary fetch returned status {response.status_code}")
            return None
        data = response.json()
        if isinstance(data, list):
            logger.warning("Boundary source returned list, wrapping as FeatureCollection")
            data = {"type": "FeatureCollection", "features": data}
        elif data.get('type') == 'Feature':
            data = {"type": "FeatureCollection", "features": [data]}
        return gpd.GeoDataFrame.from_features(data.get('features', []), crs='EPSG:4326')
