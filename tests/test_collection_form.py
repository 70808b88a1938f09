"""Test the collector data-entry form."""
from datetime import date
from decimal import Decimal

import pytest

from taka_dashboard.models.collection import CollectionInput, CollectionRecord, WasteType
from taka_dashboard.models.errors import CollectionValidationError, RecordStoreError
from taka_dashboard.services.collection_form import CollectionForm

TODAY = date(2025, 10, 20)


class FakeStore:
    def __init__(self, error=None):
        self.error = error
        self.submitted = []

    def submit(self, collection):
        if self.error:
            raise self.error
        self.submitted.append(collection)
        return CollectionRecord.from_dict({**collection.to_payload(), "id": len(self.submitted)})


@pytest.fixture
def form(catalog):
    return CollectionForm(catalog, today=TODAY)


def test_defaults_use_first_site(form, catalog):
    first = catalog.first()

    assert form.values["site_name"] == first.name
    assert form.values["latitude"] == first.latitude
    assert form.values["waste_type"] == "Organic"
    assert form.values["collection_date"] == "2025-10-20"
    assert form.values["collection_count"] == "1"


def test_selecting_site_copies_coordinates(form):
    assert form.select_site("Lurambi Refuse Chamber")

    assert form.values["latitude"] == 0.2998
    assert form.values["longitude"] == 34.76485


def test_unknown_site_is_ignored(form):
    before = dict(form.values)

    assert not form.select_site("Somewhere Else")
    form.set_field("site_name", "Somewhere Else")

    assert form.values == before


def test_unknown_field_is_rejected(form):
    with pytest.raises(ValueError):
        form.set_field("colour", "green")


def test_validate_builds_collection_input(form):
    form.set_field("waste_type", "Mixed")
    form.set_field("total_volume", "12.5")
    form.set_field("collection_count", "3")

    collection = form.validate()

    assert isinstance(collection, CollectionInput)
    assert collection.waste_type == WasteType.MIXED
    assert collection.total_volume == Decimal("12.5")
    assert collection.collection_count == 3
    assert collection.organic_volume == Decimal("0")
    assert "organicVolume" not in collection.to_payload()


def test_validate_reports_every_bad_field(form):
    form.set_field("total_volume", "a lot")
    form.set_field("collection_count", "")
    form.set_field("collection_date", "")

    with pytest.raises(CollectionValidationError) as exc_info:
        form.validate()

    assert set(exc_info.value.errors) == {"total_volume", "collection_count", "collection_date"}


def test_negative_volume_is_rejected(form):
    form.set_field("total_volume", "-1")

    with pytest.raises(CollectionValidationError) as exc_info:
        form.validate()
    assert "total_volume" in exc_info.value.errors


def test_huge_volumes_are_rejected(form):
    form.set_field("total_volume", "9e999999")
    form.set_field("waste_separated", True)
    form.set_field("organic_volume", "9e999999")
    form.set_field("inorganic_volume", "9e999999")

    with pytest.raises(CollectionValidationError) as exc_info:
        form.validate()
    assert set(exc_info.value.errors) == {"total_volume", "organic_volume", "inorganic_volume"}


def test_sub_volumes_may_not_exceed_total(form):
    form.set_field("total_volume", "10")
    form.set_field("waste_separated", "on")
    form.set_field("organic_volume", "7")
    form.set_field("inorganic_volume", "4")

    with pytest.raises(CollectionValidationError) as exc_info:
        form.validate()
    assert "organic_volume" in exc_info.value.errors

    form.set_field("inorganic_volume", "3")
    collection = form.validate()
    assert collection.to_payload()["organicVolume"] == "7"
    assert collection.to_payload()["inorganicVolume"] == "3"


def test_sub_volumes_ignored_when_not_separated(form):
    form.set_field("total_volume", "10")
    form.set_field("organic_volume", "99")

    assert form.validate().organic_volume == Decimal("0")


def test_submit_success_resets_form(form):
    store = FakeStore()
    form.set_field("site_name", "Khayenga Refuse Chamber")
    form.set_field("total_volume", "4.2")
    form.set_field("comments", "Market day")

    record = form.submit(store)

    assert record.id == 1
    assert record.site_name == "Khayenga Refuse Chamber"
    assert record.total_volume == "4.2"
    assert form.success
    assert form.error == ""
    assert form.values["total_volume"] == "0"
    assert form.values["site_name"] == "Rosterman Dumpsite"


def test_submit_invalid_does_not_call_store(form):
    store = FakeStore()
    form.set_field("total_volume", "")

    assert form.submit(store) is None
    assert store.submitted == []
    assert "total_volume" in form.field_errors
    assert not form.success


def test_submit_store_failure_keeps_values(form):
    store = FakeStore(error=RecordStoreError("Could not reach the record store. Check your connection."))
    form.set_field("total_volume", "4.2")

    assert form.submit(store) is None
    assert form.error == "Could not reach the record store. Check your connection."
    assert form.field_errors == {}
    assert form.values["total_volume"] == "4.2"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
