"""
Pydantic models for resolution records and external payloads.
"""

import json
import math
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class Confidence(str, Enum):
    """Confidence rating enumeration."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class InputType(str, Enum):
    """Classification of a raw user query."""
    POSTAL = "postal"
    ADDRESS = "address"
    PROJECT = "project"
    MIXED = "mixed"


class Source(str, Enum):
    """Subsystems that can contribute to a resolution."""
    POSTAL = "postal"
    ONEMAP = "onemap"
    PROJECT = "project"
    SUBZONE = "subzone"


class LatLng(BaseModel):
    """A WGS84 coordinate pair."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class AddressCandidate(BaseModel):
    """An alternate geocoded match kept for user disambiguation."""

    model_config = ConfigDict(frozen=True)

    address: str
    postal: Optional[str] = None
    latlng: LatLng
    score: float = Field(0.0, ge=0, le=100)
    subzone_id: Optional[str] = None
    subzone_name: Optional[str] = None


class SubzoneData(BaseModel):
    """A subzone, the unit of geographic resolution."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    planning_area_id: str = ""
    region: Optional[str] = None


class GeocodeResult(BaseModel):
    """Output of the geocoder: a primary match plus alternates."""

    lat: float
    lng: float
    address: str
    postal: Optional[str] = None
    candidates: Optional[List[AddressCandidate]] = None
    source: List[Source] = Field(default_factory=list)


class ProjectLocation(BaseModel):
    """Location remembered for a named project or point of interest."""

    model_config = ConfigDict(frozen=True)

    address: str
    postal: Optional[str] = None
    latlng: LatLng


class ResolvedAddress(BaseModel):
    """Canonical geographic reference for a user query.

    Immutable once constructed. ``source_chain`` lists the subsystems that
    contributed, in order, e.g. ``["postal", "onemap", "subzone"]``.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    resolved_address: str
    postal: Optional[str] = None
    latlng: LatLng
    subzone_id: str
    subzone_name: str
    planning_area_id: Optional[str] = None
    planning_area_name: Optional[str] = None
    confidence: Confidence
    source_chain: List[Source]
    candidates: Optional[List[AddressCandidate]] = None
    raw_query: str
    normalized_query: str

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dictionary, omitting unset optionals."""
        return self.model_dump(mode="json", exclude_none=True)


class OneMapResult(BaseModel):
    """A single row of a OneMap search response.

    OneMap returns every field as a string, including coordinates. Numeric
    values are coerced to strings here and parsed by ``coordinates()``.
    """

    SEARCHVAL: str = ""
    BLK_NO: str = ""
    ROAD_NAME: str = ""
    BUILDING: str = ""
    ADDRESS: str = ""
    POSTAL: str = ""
    X: str = ""
    Y: str = ""
    LATITUDE: str = ""
    LONGITUDE: str = ""
    LONGTITUDE: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_to_string(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            # Only the misspelled longitude key stays unset when null
            return None if info.field_name == "LONGTITUDE" else ""
        if isinstance(value, str):
            return value
        return str(value)

    @property
    def display_address(self) -> str:
        return self.ADDRESS or self.SEARCHVAL

    @property
    def postal_code(self) -> Optional[str]:
        # OneMap uses "NIL" for rows without a postal code
        if not self.POSTAL or self.POSTAL.upper() == "NIL":
            return None
        return self.POSTAL

    def coordinates(self) -> Optional[Tuple[float, float]]:
        """Parse latitude and longitude.

        Returns:
            Tuple of (lat, lng), or None if either value is missing,
            non-numeric or not finite
        """
        lat = _parse_coordinate(self.LATITUDE)
        lng = _parse_coordinate(self.LONGITUDE or self.LONGTITUDE or "")
        if lat is None or lng is None:
            return None
        return lat, lng


class OneMapResponse(BaseModel):
    """OneMap elastic search response envelope."""

    found: Optional[int] = None
    totalNumPages: int = 0
    pageNum: int = 0
    results: List[OneMapResult] = Field(default_factory=list)

    @field_validator("results", mode="before")
    @classmethod
    def _null_results(cls, value: Any) -> Any:
        return value if value is not None else []

    @property
    def is_empty(self) -> bool:
        return self.found == 0 or not self.results


class BoundingBox(BaseModel):
    """Precomputed subzone bounding box."""

    minLat: float
    maxLat: float
    minLng: float
    maxLng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.minLat <= lat <= self.maxLat and self.minLng <= lng <= self.maxLng


class SubzoneRow(BaseModel):
    """A subzone row as returned by the spatial store.

    The point-query procedure names its columns ``subzone_id`` and
    ``subzone_name`` while the table uses ``id`` and ``name``; both are
    accepted. An unparseable ``bbox`` becomes None instead of rejecting
    the row.
    """

    id: Optional[str] = None
    subzone_id: Optional[str] = None
    name: Optional[str] = None
    subzone_name: Optional[str] = None
    planning_area_id: Optional[str] = None
    region: Optional[str] = None
    bbox: Optional[BoundingBox] = None

    @field_validator("id", "subzone_id", "planning_area_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("bbox", mode="before")
    @classmethod
    def _parse_bbox(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return None
        if not isinstance(value, dict):
            return None
        try:
            return BoundingBox.model_validate(value)
        except ValueError:
            return None

    def to_subzone(self) -> Optional[SubzoneData]:
        """Coalesce into SubzoneData, or None if id or name is missing."""
        subzone_id = self.id or self.subzone_id
        name = self.name or self.subzone_name
        if not subzone_id or not name:
            return None
        return SubzoneData(
            id=subzone_id,
            name=name,
            planning_area_id=self.planning_area_id or "",
            region=self.region,
        )


def _parse_coordinate(value: str) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed
