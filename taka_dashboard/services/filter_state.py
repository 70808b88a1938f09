"""Filter state holder: normalises filter edits and debounces queries."""
import asyncio
import inspect
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from loguru import logger

from ..configurations.config import Config
from ..models.collection import (
    FILTER_FIELDS,
    CollectionRecord,
    FilterCriteria,
    MapMarker,
    WasteType,
)
from ..models.errors import CollectionValidationError, RecordStoreError

DEBOUNCE_JOB_ID = 'filter_debounce'

DECIMAL_FIELDS = {"min_volume", "max_volume", "min_organic_volume"}
DATE_FIELDS = {"start_date", "end_date"}

_TRUE_VALUES = {"true", "yes", "1"}
_FALSE_VALUES = {"false", "no", "0"}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_filter_value(field_name: str, value: Any) -> Any:
    """Coerce a raw form value for `field_name`; unusable input becomes None."""
    if field_name not in FILTER_FIELDS:
        raise ValueError(f"Unknown filter field: {field_name}")
    if _blank(value):
        return None
    if field_name in DECIMAL_FIELDS:
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    if field_name == "min_collections":
        # plain digits only; "2.5" or "1e9" are not a count
        try:
            count = int(str(value).strip())
        except ValueError:
            return None
        return count if count > 0 else None
    if field_name in DATE_FIELDS:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value).strip())
        except ValueError:
            return None
    if field_name == "waste_type":
        try:
            return WasteType(value)
        except ValueError:
            return None
    if field_name == "waste_separated":
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        return None
    return str(value).strip()


class FilterStateHolder:
    """Holds the dashboard filter criteria and the selected marker.

    Every change schedules one query after a quiet period. Results are
    applied only for the most recently issued query whose criteria still
    match the current criteria.
    """

    def __init__(self, query: Callable[[FilterCriteria], Any],
                 debounce_seconds: Optional[float] = None,
                 scheduler: Optional[AsyncIOScheduler] = None,
                 on_results: Optional[Callable[[FilterCriteria, List[CollectionRecord]], None]] = None,
                 on_error: Optional[Callable[[str], None]] = None,
                 on_selection_change: Optional[Callable[[Optional[MapMarker]], None]] = None):
        self._query = query
        self.debounce_seconds = Config.FILTER_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self.scheduler = scheduler or AsyncIOScheduler()
        self.on_results = on_results
        self.on_error = on_error
        self.on_selection_change = on_selection_change
        self._criteria = FilterCriteria()
        self._selection: Optional[MapMarker] = None
        self._issued = 0
        self._in_flight = set()
        self.is_running = False

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    @property
    def selection(self) -> Optional[MapMarker]:
        return self._selection

    def start(self):
        if self.is_running:
            logger.warning("Filter scheduler is already running")
            return
        self.scheduler.start()
        self.is_running = True

    def shutdown(self):
        if not self.is_running:
            return
        self.scheduler.shutdown(wait=False)
        self.is_running = False

    def update(self, field_name: str, value: Any):
        """Apply one field edit.

        Editing anything but site_name releases the site pin and the
        selected marker.
        """
        normalized = normalize_filter_value(field_name, value)
        if field_name == "site_name":
            self._criteria = self._criteria.with_changes(site_name=normalized)
        else:
            self._criteria = self._criteria.with_changes(site_name=None, **{field_name: normalized})
        self._set_selection(None)
        self._schedule()

    def select_site(self, marker: MapMarker):
        """Pin the dashboard to one site; every other filter is cleared."""
        self._criteria = FilterCriteria(site_name=marker.site_name)
        self._set_selection(marker)
        self._schedule()

    def reset(self):
        self._criteria = FilterCriteria()
        self._set_selection(None)
        self._schedule()

    def _set_selection(self, marker: Optional[MapMarker]):
        changed = marker != self._selection
        self._selection = marker
        if changed and self.on_selection_change:
            self.on_selection_change(marker)

    def _schedule(self):
        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.debounce_seconds)
        self.scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=run_date),
            id=DEBOUNCE_JOB_ID,
            name='Debounced filter query',
            replace_existing=True,
            misfire_grace_time=None,
        )

    async def _fire(self):
        # Returns at once so a slow query never blocks the next debounce tick.
        task = asyncio.get_running_loop().create_task(self.flush())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_query(self, criteria: FilterCriteria) -> List[CollectionRecord]:
        if inspect.iscoroutinefunction(self._query):
            return await self._query(criteria)
        return await asyncio.to_thread(self._query, criteria)

    async def flush(self) -> bool:
        """Issue one query for the current criteria.

        Returns True when the results were applied, False when they were
        superseded or the query failed.
        """
        self._issued += 1
        ticket = self._issued
        criteria = self._criteria
        logger.debug(f"Issuing filter query #{ticket}: {criteria.to_params()}")

        try:
            records = await self._run_query(criteria)
        except Exception as e:
            if ticket == self._issued:
                self._report(ticket, e)
            return False

        if ticket != self._issued or criteria != self._criteria:
            logger.debug(f"Discarding stale results of filter query #{ticket}")
            return False

        if self.on_results:
            try:
                self.on_results(criteria, records)
            except Exception as e:
                self._report(ticket, e)
                return False
        return True

    def _report(self, ticket: int, error: Exception):
        if isinstance(error, (RecordStoreError, CollectionValidationError)):
            logger.error(f"Filter query #{ticket} failed: {error}")
            message = str(error)
        else:
            logger.exception(f"Unexpected error in filter query #{ticket}: {error}")
            message = "Could not load collection data. Please try again."
        if self.on_error:
            self.on_error(message)
