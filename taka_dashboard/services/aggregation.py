"""Aggregation pipeline: collection records -> summary, trend and markers.

summarize() and trend() are pure and deterministic; they are re-run on
every record set the filter state holder delivers.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd
from loguru import logger

from ..models.collection import MAX_VOLUME, CollectionRecord, MapMarker, parse_collection_date
from ..models.errors import CollectionValidationError

RECORD_COLUMNS = ["id", "collection_date", "site_name", "waste_type", "total_volume"]


@dataclass(frozen=True)
class Summary:
    total_records: int = 0
    total_volume: Decimal = Decimal("0")
    by_waste_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRecords": self.total_records,
            "totalVolume": float(self.total_volume),
            "byWasteType": dict(self.by_waste_type),
        }


def parse_volume(value: Any, record_id: Any = None) -> Decimal:
    """Parse a volume in tons as a finite Decimal.

    Raises CollectionValidationError instead of treating bad input as zero.
    """
    try:
        volume = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        volume = None
    label = f"record {record_id}" if record_id is not None else "volume"
    if volume is None or not volume.is_finite():
        raise CollectionValidationError({"total_volume": f"{label}: {value!r} is not a valid volume"})
    if abs(volume) > MAX_VOLUME:
        raise CollectionValidationError({"total_volume": f"{label}: {value!r} is out of range"})
    return volume


def summarize(records: Sequence[CollectionRecord]) -> Summary:
    total = Decimal("0")
    by_waste_type: Dict[str, int] = {}
    for record in records:
        total += parse_volume(record.total_volume, record.id)
        key = record.waste_type.value
        by_waste_type[key] = by_waste_type.get(key, 0) + 1
    return Summary(total_records=len(records), total_volume=total, by_waste_type=by_waste_type)


def trend(records: Iterable[CollectionRecord]) -> Dict[str, Decimal]:
    """Sum of total volume per calendar date, keyed by ISO date."""
    series: Dict[str, Decimal] = {}
    for record in records:
        key = parse_collection_date(record.collection_date).isoformat()
        series[key] = series.get(key, Decimal("0")) + parse_volume(record.total_volume, record.id)
    return series


def records_frame(records: Sequence[CollectionRecord]) -> pd.DataFrame:
    """Tabular view of records for the collection table."""
    if not records:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    rows = [
        {
            "id": record.id,
            "collection_date": record.collection_date.isoformat(),
            "site_name": record.site_name,
            "waste_type": record.waste_type.value,
            "total_volume": float(parse_volume(record.total_volume, record.id)),
        }
        for record in records
    ]
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def recent_records(records: Sequence[CollectionRecord], limit: int = 10) -> List[Dict[str, Any]]:
    """First `limit` records in store order, as plain dicts."""
    return records_frame(records).head(limit).to_dict(orient="records")


def trend_frame(series: Dict[str, Decimal]) -> pd.DataFrame:
    """Trend mapping as a date-sorted frame for charting."""
    if not series:
        return pd.DataFrame(columns=["date", "volume"])
    df = pd.DataFrame(
        {"date": list(series.keys()), "volume": [float(v) for v in series.values()]}
    )
    return df.sort_values("date").reset_index(drop=True)


def markers_from_dashboard(rows: Iterable[Dict[str, Any]]) -> List[MapMarker]:
    """Build map markers from dashboardData rows; malformed rows are skipped."""
    markers = []
    for row in rows:
        try:
            markers.append(MapMarker(
                id=str(row["id"]),
                latitude=float(row["lat"]),
                longitude=float(row["lng"]),
                site_name=row["siteName"],
                waste_type=row.get("wasteType", ""),
                volume=float(row.get("volume") or 0),
                collection_date=parse_collection_date(row["date"]) if row.get("date") else None,
            ))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed dashboard marker {row!r}: {e}")
    return markers
