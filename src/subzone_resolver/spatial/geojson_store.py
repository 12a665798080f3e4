"""
Local GeoJSON spatial store.

Loads subzone polygons (and optionally planning areas) with geopandas and
answers containment queries with shapely, without any remote service.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import geopandas as gpd
import pandas as pd
from shapely.geometry import Point

from ..cache.models import SubzoneRow
from ..errors import SpatialQueryError
from .base import SpatialStore

logger = logging.getLogger(__name__)


class GeoJSONSpatialStore(SpatialStore):
    """Spatial store reading subzone polygons from a GeoJSON file."""

    def __init__(
        self,
        subzones_path: Path,
        planning_areas_path: Optional[Path] = None,
        id_field: str = "id",
        name_field: str = "name",
        planning_area_field: str = "planning_area_id",
        region_field: str = "region",
    ):
        """Initialize GeoJSON store.

        Args:
            subzones_path: GeoJSON file with one polygon feature per subzone
            planning_areas_path: Optional GeoJSON/JSON file with planning area
                ``id`` and ``name`` attributes
            id_field: Subzone id attribute
            name_field: Subzone name attribute
            planning_area_field: Parent planning area id attribute
            region_field: Region attribute (optional in the data)
        """
        self.subzones_path = Path(subzones_path)
        self.planning_areas_path = Path(planning_areas_path) if planning_areas_path else None
        self.id_field = id_field
        self.name_field = name_field
        self.planning_area_field = planning_area_field
        self.region_field = region_field

        self.subzones_gdf = self._load(self.subzones_path)
        self.planning_area_names: Dict[str, str] = self._load_planning_area_names()

    @staticmethod
    def _load(path: Path) -> gpd.GeoDataFrame:
        if not path.exists():
            raise FileNotFoundError(f"Spatial data file not found: {path}")

        logger.info(f"Loading spatial data from {path}")
        gdf = gpd.read_file(path)

        # Ensure EPSG:4326
        if gdf.crs is not None and gdf.crs != "EPSG:4326":
            logger.info(f"Reprojecting from {gdf.crs} to EPSG:4326")
            gdf = gdf.to_crs("EPSG:4326")

        gdf.sindex  # Access triggers creation
        logger.info(f"Loaded {len(gdf)} features from {path.name}")
        return gdf

    def _load_planning_area_names(self) -> Dict[str, str]:
        if self.planning_areas_path is None:
            return {}
        gdf = self._load(self.planning_areas_path)
        names = {}
        for _, row in gdf.iterrows():
            area_id = _attribute(row, "id")
            name = _attribute(row, "name")
            if area_id and name:
                names[area_id] = name
        return names

    def _row(self, feature) -> SubzoneRow:
        bbox = None
        if feature.geometry is not None and not feature.geometry.is_empty:
            minx, miny, maxx, maxy = feature.geometry.bounds
            bbox = {"minLat": miny, "maxLat": maxy, "minLng": minx, "maxLng": maxx}
        return SubzoneRow(
            id=_attribute(feature, self.id_field),
            name=_attribute(feature, self.name_field),
            planning_area_id=_attribute(feature, self.planning_area_field),
            region=_attribute(feature, self.region_field),
            bbox=bbox,
        )

    def find_subzone_by_point(self, lat: float, lng: float) -> List[SubzoneRow]:
        try:
            point = Point(lng, lat)
            matching = self.subzones_gdf[self.subzones_gdf.contains(point)]
            return [self._row(feature) for _, feature in matching.iterrows()]
        except Exception as e:
            raise SpatialQueryError(f"Point query failed for ({lat}, {lng}): {e}") from e

    def check_point_in_subzone(self, subzone_id: str, lat: float, lng: float) -> bool:
        try:
            matching = self.subzones_gdf[
                self.subzones_gdf[self.id_field].astype(str) == str(subzone_id)
            ]
            if matching.empty:
                return False
            return bool(matching.geometry.iloc[0].contains(Point(lng, lat)))
        except Exception as e:
            raise SpatialQueryError(f"Containment check failed for {subzone_id}: {e}") from e

    def list_subzones(self, limit: int = 1000) -> List[SubzoneRow]:
        return [self._row(feature) for _, feature in self.subzones_gdf.head(limit).iterrows()]

    def get_planning_area_name(self, planning_area_id: str) -> Optional[str]:
        return self.planning_area_names.get(str(planning_area_id))


def _attribute(feature, field: str) -> Optional[str]:
    """Read an attribute as a string, treating missing and NaN as None."""
    value = feature.get(field)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value)
