"""Shared fixtures for dashboard tests."""
from datetime import date

import pytest

from taka_dashboard.configurations.sites import load_site_catalog
from taka_dashboard.models.collection import CollectionRecord, WasteType


@pytest.fixture
def catalog():
    return load_site_catalog()


@pytest.fixture
def make_record():
    def _make(id=1, site_name="Rosterman Dumpsite", waste_type=WasteType.MIXED,
              collection_date=date(2025, 10, 20), total_volume="10.0", **extra):
        return CollectionRecord(
            id=id,
            site_name=site_name,
            waste_type=waste_type,
            collection_date=collection_date,
            total_volume=total_volume,
            **extra,
        )
    return _make


class RecordingView:
    """Map view double that records pan/popup commands in order."""

    def __init__(self):
        self.events = []
        self.open_popup_id = None

    def pan_to(self, latitude, longitude, duration):
        self.events.append(("pan", latitude, longitude, duration))

    def open_popup(self, marker_id):
        if self.open_popup_id and self.open_popup_id != marker_id:
            self.close_popup()
        self.open_popup_id = marker_id
        self.events.append(("open", marker_id))

    def close_popup(self):
        if self.open_popup_id:
            self.events.append(("close", self.open_popup_id))
        self.open_popup_id = None


@pytest.fixture
def recording_view():
    return RecordingView()
