"""Collector data-entry form: field parsing, validation and submission."""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from loguru import logger

from ..configurations.sites import SiteCatalog
from ..models.collection import CollectionInput, CollectionRecord, WasteType
from ..models.errors import CollectionValidationError, RecordStoreError

VOLUME_FIELDS = ("total_volume", "organic_volume", "inorganic_volume")
FORM_FIELDS = (
    "site_name", "waste_type", "collection_date", "total_volume", "waste_separated",
    "organic_volume", "inorganic_volume", "collection_count", "latitude", "longitude", "comments",
)


class CollectionForm:
    """Holds raw form values until submit.

    Values stay as entered; validate() parses them and reports every bad
    field at once so the form can show them inline.
    """

    def __init__(self, catalog: SiteCatalog, today: Optional[date] = None):
        self.catalog = catalog
        self._today = today
        self.values: Dict[str, Any] = {}
        self.error: str = ""
        self.field_errors: Dict[str, str] = {}
        self.success = False
        self.reset()

    def reset(self):
        site = self.catalog.first()
        self.values = {
            "site_name": site.name,
            "waste_type": WasteType.ORGANIC.value,
            "collection_date": (self._today or date.today()).isoformat(),
            "total_volume": "0",
            "waste_separated": False,
            "organic_volume": "0",
            "inorganic_volume": "0",
            "collection_count": "1",
            "latitude": site.latitude,
            "longitude": site.longitude,
            "comments": "",
        }
        self.field_errors = {}

    def select_site(self, name: str) -> bool:
        site = self.catalog.by_name(name)
        if site is None:
            logger.debug(f"Ignoring unknown site selection: {name}")
            return False
        self.values.update(site_name=site.name, latitude=site.latitude, longitude=site.longitude)
        return True

    def set_field(self, name: str, value: Any):
        if name not in FORM_FIELDS:
            raise ValueError(f"Unknown form field: {name}")
        if name == "site_name":
            self.select_site(value)
            return
        if name == "waste_separated":
            value = value is True or str(value).lower() in ("true", "on", "yes", "1")
        self.values[name] = value

    def validate(self) -> CollectionInput:
        errors: Dict[str, str] = {}
        parsed: Dict[str, Any] = {}
        separated = bool(self.values.get("waste_separated"))

        for name in VOLUME_FIELDS:
            if name != "total_volume" and not separated:
                parsed[name] = Decimal("0")
                continue
            raw = str(self.values.get(name, "")).strip()
            if not raw:
                errors[name] = "is required"
                continue
            try:
                parsed[name] = Decimal(raw)
            except InvalidOperation:
                errors[name] = "must be a number"

        try:
            parsed["collection_count"] = int(str(self.values.get("collection_count", "")).strip())
        except ValueError:
            errors["collection_count"] = "must be a whole number"

        for name in ("latitude", "longitude"):
            try:
                parsed[name] = float(self.values.get(name))
            except (TypeError, ValueError):
                errors[name] = "must be a number"

        try:
            parsed["waste_type"] = WasteType(self.values.get("waste_type"))
        except ValueError:
            errors["waste_type"] = "waste type must be Organic, Inorganic or Mixed"

        try:
            parsed["collection_date"] = date.fromisoformat(str(self.values.get("collection_date", "")).strip())
        except ValueError:
            errors["collection_date"] = "collection date is required"

        if errors:
            raise CollectionValidationError(errors)

        return CollectionInput(
            site_name=self.values.get("site_name") or "",
            waste_separated=separated,
            comments=str(self.values.get("comments") or ""),
            **parsed,
        )

    def submit(self, store) -> Optional[CollectionRecord]:
        """Validate and send. Returns the stored record, or None on failure."""
        self.error = ""
        self.field_errors = {}
        self.success = False
        try:
            collection = self.validate()
            record = store.submit(collection)
        except CollectionValidationError as e:
            self.field_errors = e.errors
            self.error = str(e)
            return None
        except RecordStoreError as e:
            self.error = e.message or "Failed to submit collection data"
            return None
        self.success = True
        self.reset()
        return record
