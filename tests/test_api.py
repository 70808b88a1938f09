"""Test the dashboard HTTP API with an in-memory record store."""
from datetime import date

import pytest
from fastapi.testclient import TestClient

from taka_dashboard.api.dashboard_routes import app
from taka_dashboard.api.dependencies import get_boundary, get_record_store
from taka_dashboard.configurations.config import Config
from taka_dashboard.models.collection import CollectionRecord, FilterCriteria, MapMarker, WasteType
from taka_dashboard.models.errors import CollectionValidationError, RecordStoreError

AUTH = {"Authorization": f"Bearer {Config.API_KEY}"}


class FakeStore:
    def __init__(self, records):
        self.records = records
        self.criteria = []
        self.submitted = []
        self.error = None

    def filtered(self, criteria):
        self.criteria.append(criteria)
        if self.error:
            raise self.error
        return self.records

    def dashboard_data(self):
        if self.error:
            raise self.error
        return [MapMarker(id="1", latitude=0.25509, longitude=34.72066, site_name="Rosterman Dumpsite",
                          waste_type="Mixed", volume=10.5, collection_date=date(2025, 10, 20))]

    def submit(self, collection):
        if self.error:
            raise self.error
        self.submitted.append(collection)
        return CollectionRecord.from_dict({**collection.to_payload(), "id": 99})


@pytest.fixture
def store(make_record):
    return FakeStore([
        make_record(id=1, waste_type=WasteType.ORGANIC, collection_date=date(2025, 10, 20), total_volume="12.5"),
        make_record(id=2, waste_type=WasteType.MIXED, collection_date=date(2025, 10, 20), total_volume="5.5"),
        make_record(id=3, waste_type=WasteType.MIXED, collection_date=date(2025, 10, 21), total_volume="18.3"),
    ])


@pytest.fixture
def client(store):
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_boundary] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_sites(client):
    sites = client.get("/api/sites").json()["sites"]

    assert len(sites) == 10
    assert sites[0]["id"] == "rosterman-dumpsite"
    assert sites[0]["categoryLabel"] == "Informal Dumping Site"


def test_site_directions_redirect(client):
    response = client.get("/api/sites/rosterman-dumpsite/directions", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"].endswith("destination=0.25509,34.72066")


def test_unknown_site_directions(client):
    assert client.get("/api/sites/nowhere/directions").status_code == 404


def test_dashboard_summary_and_trend(client, store):
    response = client.get("/api/dashboard", params={"wasteType": "Mixed", "minVolume": "abc"})

    assert response.status_code == 200
    data = response.json()
    assert store.criteria == [FilterCriteria(waste_type=WasteType.MIXED)]
    assert data["filters"] == {"wasteType": "Mixed"}
    assert data["summary"] == {"totalRecords": 3, "totalVolume": 36.3,
                               "byWasteType": {"Organic": 1, "Mixed": 2}}
    assert data["trend"] == [{"date": "2025-10-20", "volume": 18.0},
                             {"date": "2025-10-21", "volume": 18.3}]
    assert data["recordCount"] == 3
    assert [row["id"] for row in data["records"]] == [1, 2, 3]


def test_dashboard_store_failure(client, store):
    store.error = RecordStoreError("Could not reach the record store. Check your connection.")

    response = client.get("/api/dashboard")

    assert response.status_code == 502
    assert response.json()["detail"] == "Could not reach the record store. Check your connection."


def test_dashboard_rejected_filters(client, store):
    store.error = CollectionValidationError({"request": "Invalid input"})

    response = client.get("/api/dashboard")

    assert response.status_code == 422
    assert response.json()["detail"] == {"request": "Invalid input"}


def test_dashboard_out_of_range_volumes(client, store, make_record):
    store.records = [make_record(id=1, total_volume="9e999999"), make_record(id=2, total_volume="9e999999")]

    response = client.get("/api/dashboard")

    assert response.status_code == 422
    assert "out of range" in response.json()["detail"]["total_volume"]


def test_dashboard_ignores_exponent_collection_count(client, store):
    response = client.get("/api/dashboard", params={"minCollections": "1e999999"})

    assert response.status_code == 200
    assert store.criteria == [FilterCriteria()]


def test_dashboard_markers(client):
    markers = client.get("/api/dashboard/markers").json()["markers"]

    assert markers == [{"id": "1", "lat": 0.25509, "lng": 34.72066, "siteName": "Rosterman Dumpsite",
                        "wasteType": "Mixed", "volume": 10.5, "date": "2025-10-20"}]


def test_map_renders_overview(client):
    response = client.get("/api/dashboard/map")

    assert response.status_code == 200
    assert "Rosterman Dumpsite" in response.text
    assert "Regen Organics Fertilizer Processing Plant" in response.text


def test_map_focuses_site(client):
    response = client.get("/api/dashboard/map", params={"site_id": "lurambi-refuse-chamber"})

    assert response.status_code == 200
    assert "Lurambi Refuse Chamber" in response.text


def test_submit_collection(client, store):
    response = client.post("/api/collections", headers=AUTH, json={
        "site_name": "Masingo Refuse Chamber",
        "waste_type": "Organic",
        "collection_date": "2025-10-22",
        "total_volume": "6.5",
        "waste_separated": True,
        "organic_volume": "5",
        "inorganic_volume": "1.5",
        "collection_count": 2,
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["id"] == 99
    assert data["latitude"] == 0.285
    assert data["organicVolume"] == "5"
    assert store.submitted[0].collection_count == 2


def test_submit_requires_api_key(client, store):
    response = client.post("/api/collections", headers={"Authorization": "Bearer wrong"}, json={
        "site_name": "Masingo Refuse Chamber", "waste_type": "Organic",
        "collection_date": "2025-10-22", "total_volume": "6.5",
    })

    assert response.status_code == 401
    assert store.submitted == []


def test_submit_unknown_site(client):
    response = client.post("/api/collections", headers=AUTH, json={
        "site_name": "Nowhere Yard", "waste_type": "Organic",
        "collection_date": "2025-10-22", "total_volume": "6.5",
    })

    assert response.status_code == 422
    assert "site_name" in response.json()["detail"]


def test_submit_invalid_volumes(client, store):
    response = client.post("/api/collections", headers=AUTH, json={
        "site_name": "Masingo Refuse Chamber", "waste_type": "Organic",
        "collection_date": "2025-10-22", "total_volume": "2",
        "waste_separated": True, "organic_volume": "3", "inorganic_volume": "0",
    })

    assert response.status_code == 422
    assert "organic_volume" in response.json()["detail"]
    assert store.submitted == []


def test_submit_store_failure(client, store):
    store.error = RecordStoreError("The record store did not respond in time. Please try again.")

    response = client.post("/api/collections", headers=AUTH, json={
        "site_name": "Masingo Refuse Chamber", "waste_type": "Organic",
        "collection_date": "2025-10-22", "total_volume": "6.5",
    })

    assert response.status_code == 502
    assert response.json()["detail"] == "The record store did not respond in time. Please try again."


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
