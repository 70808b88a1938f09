"""Data models for collection records, sites, markers and filters."""
from dataclasses import dataclass, fields, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from .errors import CollectionValidationError

# Larger volumes are rejected so totals cannot overflow and always fit a float.
MAX_VOLUME = Decimal("1e12")


class WasteType(str, Enum):
    ORGANIC = "Organic"
    INORGANIC = "Inorganic"
    MIXED = "Mixed"


class SiteCategory(str, Enum):
    FORMAL = "formal"
    INFORMAL = "informal"
    PROCESSING = "processing"
    PLASTIC = "plastic"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @property
    def color(self) -> str:
        return _CATEGORY_COLORS[self]


_CATEGORY_LABELS = {
    SiteCategory.FORMAL: "Formal Waste Receptacle",
    SiteCategory.INFORMAL: "Informal Dumping Site",
    SiteCategory.PROCESSING: "Waste Processing Facility",
    SiteCategory.PLASTIC: "Plastic Waste Collection Yard",
}

_CATEGORY_COLORS = {
    SiteCategory.FORMAL: "#006400",
    SiteCategory.INFORMAL: "#e74c3c",
    SiteCategory.PROCESSING: "#3498db",
    SiteCategory.PLASTIC: "#f39c12",
}


def parse_collection_date(value: Any) -> date:
    """Return the calendar date of a date, datetime or ISO string.

    Aware datetimes are converted to UTC first; the time of day is dropped.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        return parse_collection_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    raise ValueError(f"Unsupported date value: {value!r}")


@dataclass
class CollectionInput:
    """A collector submission, before the store assigns an id."""
    site_name: str
    waste_type: WasteType
    collection_date: date
    total_volume: Decimal
    collection_count: int
    latitude: float
    longitude: float
    waste_separated: bool = False
    organic_volume: Decimal = Decimal("0")
    inorganic_volume: Decimal = Decimal("0")
    comments: str = ""

    def __post_init__(self):
        errors: Dict[str, str] = {}
        if not self.site_name or not isinstance(self.site_name, str):
            errors["site_name"] = "site name is required"
        if not isinstance(self.waste_type, WasteType):
            errors["waste_type"] = "waste type must be Organic, Inorganic or Mixed"
        if not isinstance(self.collection_date, date):
            errors["collection_date"] = "collection date is required"
        for name in ("total_volume", "organic_volume", "inorganic_volume"):
            volume = getattr(self, name)
            if not isinstance(volume, Decimal) or not volume.is_finite():
                errors[name] = "must be a number"
            elif volume < 0:
                errors[name] = "must not be negative"
            elif volume > MAX_VOLUME:
                errors[name] = "is out of range"
        if isinstance(self.collection_count, bool) or not isinstance(self.collection_count, int) \
                or self.collection_count < 1:
            errors["collection_count"] = "must be a positive whole number"
        if not isinstance(self.latitude, (int, float)) or not -90 <= self.latitude <= 90:
            errors["latitude"] = "must be between -90 and 90"
        if not isinstance(self.longitude, (int, float)) or not -180 <= self.longitude <= 180:
            errors["longitude"] = "must be between -180 and 180"
        if self.waste_separated and not any(
            name in errors for name in ("total_volume", "organic_volume", "inorganic_volume")
        ):
            if self.organic_volume + self.inorganic_volume > self.total_volume:
                errors["organic_volume"] = "organic and inorganic volumes exceed the total volume"
        if errors:
            raise CollectionValidationError(errors)

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "siteName": self.site_name,
            "wasteType": self.waste_type.value,
            "collectionDate": self.collection_date.isoformat(),
            "totalVolume": str(self.total_volume),
            "wasteSeparated": self.waste_separated,
            "collectionCount": self.collection_count,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "comments": self.comments,
        }
        if self.waste_separated:
            payload["organicVolume"] = str(self.organic_volume)
            payload["inorganicVolume"] = str(self.inorganic_volume)
        return payload


@dataclass(frozen=True)
class CollectionRecord:
    """A stored collection record.

    total_volume keeps the store's decimal string; the aggregation
    pipeline owns parsing it.
    """
    id: int
    site_name: str
    waste_type: WasteType
    collection_date: date
    total_volume: str
    waste_separated: bool = False
    organic_volume: Optional[str] = None
    inorganic_volume: Optional[str] = None
    collection_count: int = 1
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    comments: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollectionRecord":
        try:
            return cls(
                id=int(data["id"]),
                site_name=data["siteName"],
                waste_type=WasteType(data["wasteType"]),
                collection_date=parse_collection_date(data["collectionDate"]),
                total_volume=str(data["totalVolume"]),
                waste_separated=bool(data.get("wasteSeparated", False)),
                organic_volume=_str_or_none(data.get("organicVolume")),
                inorganic_volume=_str_or_none(data.get("inorganicVolume")),
                collection_count=int(data.get("collectionCount") or 1),
                latitude=_float_or_none(data.get("latitude")),
                longitude=_float_or_none(data.get("longitude")),
                comments=data.get("comments"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CollectionValidationError({"record": f"malformed collection record: {e}"})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "siteName": self.site_name,
            "wasteType": self.waste_type.value,
            "collectionDate": self.collection_date.isoformat(),
            "totalVolume": self.total_volume,
            "wasteSeparated": self.waste_separated,
            "organicVolume": self.organic_volume,
            "inorganicVolume": self.inorganic_volume,
            "collectionCount": self.collection_count,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "comments": self.comments,
        }


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _float_or_none(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class MapMarker:
    id: str
    latitude: float
    longitude: float
    site_name: str
    waste_type: str
    volume: float = 0.0
    collection_date: Optional[date] = None


@dataclass(frozen=True)
class SiteLocation:
    id: str
    name: str
    latitude: float
    longitude: float
    category: SiteCategory
    description: str
    status: str
    challenges: str
    image: Optional[str] = None

    def to_marker(self) -> MapMarker:
        return MapMarker(
            id=self.id,
            latitude=self.latitude,
            longitude=self.longitude,
            site_name=self.name,
            waste_type=self.category.value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "category": self.category.value,
            "categoryLabel": self.category.label,
            "description": self.description,
            "status": self.status,
            "challenges": self.challenges,
            "image": self.image,
        }


@dataclass(frozen=True)
class FilterCriteria:
    """Dashboard filters. None on any field means no constraint.

    waste_separated is tri-state: None (any), True, False.
    """
    site_name: Optional[str] = None
    waste_type: Optional[WasteType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_volume: Optional[Decimal] = None
    max_volume: Optional[Decimal] = None
    waste_separated: Optional[bool] = None
    min_collections: Optional[int] = None
    min_organic_volume: Optional[Decimal] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def with_changes(self, **changes) -> "FilterCriteria":
        return replace(self, **changes)

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = str(value)
            params[_WIRE_NAMES[f.name]] = value
        return params


_WIRE_NAMES = {
    "site_name": "siteName",
    "waste_type": "wasteType",
    "start_date": "startDate",
    "end_date": "endDate",
    "min_volume": "minVolume",
    "max_volume": "maxVolume",
    "waste_separated": "wasteSeparated",
    "min_collections": "minCollections",
    "min_organic_volume": "minOrganicVolume",
}

FILTER_FIELDS = tuple(_WIRE_NAMES)
