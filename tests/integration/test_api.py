from __future__ import annotations

import numpy as np
import pytest
from fastapi.testclient import TestClient
from geopy.exc import GeocoderTimedOut

from street_geocoder import (
    AddressComposer,
    AddressInterpolator,
    AddressResolver,
    Geocoder,
    GridConfig,
    GridEstimator,
)

from pothole_api.app import create_app, get_address_resolver, get_report_store
from pothole_api.errors import ReportStoreError
from pothole_api.settings import get_settings
from pothole_api.store import InMemoryReportStore

from tests.conftest import FakeNominatim, make_location

LA_CAPTURE_ADDRESS = "123 Main St, Los Angeles, CA"


class BrokenStore:
    def put(self, report_id, record, ttl=0):
        raise ReportStoreError()

    def get(self, report_id):
        raise ReportStoreError("Failed to read report")


def _resolver(fake: FakeNominatim) -> AddressResolver:
    geocoder = Geocoder(geolocator=fake, min_delay_seconds=0)
    grid = GridEstimator(GridConfig(jitter=0), rng=np.random.default_rng(0))
    interpolator = AddressInterpolator(geocoder, grid, locality="Los Angeles", region="CA")
    return AddressResolver(geocoder, interpolator, AddressComposer())


@pytest.fixture
def store():
    return InMemoryReportStore()


@pytest.fixture
def nominatim():
    return FakeNominatim(
        reverse_result=make_location(34.05, -118.251, {"road": "Main St", "city": "Los Angeles"}),
        geocode_result=[
            make_location(34.05, -118.25, {"house_number": "100", "road": "Main St"}),
            make_location(34.05, -118.252, {"house_number": "200", "road": "Main St"}),
        ],
    )


@pytest.fixture
def app(store, nominatim):
    app = create_app()
    app.dependency_overrides[get_report_store] = lambda: store
    app.dependency_overrides[get_address_resolver] = lambda: _resolver(nominatim)
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def _payload(image: str, address: str | None = LA_CAPTURE_ADDRESS) -> dict:
    return {
        "type": "pothole",
        "location": {"lat": 34.05, "lng": -118.25, "accuracy": 10},
        "timestamp": "2026-10-19T15:29:58.000Z",
        "image": image,
        "address": address,
        "source": "Fix My Street",
    }


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["cache-control"] == "no-store"


def test_create_report(client, store, jpeg_data_uri):
    resp = client.post("/report", json=_payload(jpeg_data_uri))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["address"] == LA_CAPTURE_ADDRESS
    assert LA_CAPTURE_ADDRESS in body["formalLetter"]
    assert "34.05,-118.25" in body["mapLink"]
    assert body["mailtoUrl"].startswith("mailto:BSS.CustomerService@lacity.org?cc=311@lacity.org")
    assert body["portalUrl"] == "https://myla311.lacity.org/portal/faces/home"
    assert body["message"] == "Report ready to send!"
    assert body["viewLink"] == f"https://fixmystreet.example/view/{body['reportId']}"
    assert store.get(body["reportId"])["status"] == "pending_submission"


def test_view_and_image_of_created_report(client, jpeg_data_uri):
    report_id = client.post("/report", json=_payload(jpeg_data_uri)).json()["reportId"]

    view = client.get(f"/view/{report_id}")
    assert view.status_code == 200
    record = view.json()
    assert record["id"] == report_id
    assert record["status"] == "pending_submission"
    assert "image" not in record
    assert record["imageLink"].endswith(f"/image/{report_id}")
    assert client.get(f"/view/{report_id}").json() == record

    image = client.get(f"/image/{report_id}")
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/jpeg"
    assert image.content[:2] == b"\xff\xd8"


def test_unknown_report_is_404(client):
    for path in ("/view/LA-NOPE-0000", "/image/LA-NOPE-0000"):
        resp = client.get(path)
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Report not found"}


def test_report_without_address_is_resolved_server_side(client, jpeg_data_uri):
    resp = client.post("/report", json=_payload(jpeg_data_uri, address=""))

    assert resp.status_code == 200
    # the capture point sits on the known address 100
    assert resp.json()["address"] == "100, Main St, Los Angeles, CA"


@pytest.mark.parametrize(
    "mutate",
    [
        lambda p: p.pop("location"),
        lambda p: p["location"].update(lat=123.0),
        lambda p: p.pop("timestamp"),
        lambda p: p.update(image="not-a-data-uri"),
    ],
)
def test_malformed_capture_is_rejected(client, store, jpeg_data_uri, mutate):
    payload = _payload(jpeg_data_uri)
    mutate(payload)

    resp = client.post("/report", json=payload)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Failed to process report"}
    assert len(store) == 0


def test_storage_failure_is_reported(app, client, jpeg_data_uri):
    app.dependency_overrides[get_report_store] = lambda: BrokenStore()

    resp = client.post("/report", json=_payload(jpeg_data_uri))

    assert resp.status_code == 502
    assert resp.json() == {"success": False, "error": "Failed to store report"}


def test_resolve_address_interpolates(client, nominatim):
    resp = client.get("/address", params={"lat": 34.05, "lng": -118.251})

    assert resp.status_code == 200
    body = resp.json()
    assert body["formatted"] == "150, Main St, Los Angeles, CA"
    assert body["streetNumber"] == "150"
    assert body["approximate"] is False
    assert nominatim.geocode_calls[0][0] == {"street": "Main St", "city": "Los Angeles", "state": "CA"}


def test_resolve_address_falls_back_on_geocoder_timeout(client, nominatim):
    nominatim.error = GeocoderTimedOut("slow")

    resp = client.get("/address", params={"lat": 34.05, "lng": -118.251})

    assert resp.status_code == 200
    assert resp.json()["formatted"] == "Los Angeles, CA"


def test_resolve_address_rejects_out_of_range(client):
    resp = client.get("/address", params={"lat": 95, "lng": 0})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_cors_allows_configured_origin_only(monkeypatch, store):
    monkeypatch.setenv("CORS_ORIGINS", "https://app.fixmystreet.example")
    get_settings.cache_clear()
    app = create_app()
    app.dependency_overrides[get_report_store] = lambda: store
    client = TestClient(app)

    allowed = client.get("/health", headers={"Origin": "https://app.fixmystreet.example"})
    assert allowed.headers["access-control-allow-origin"] == "https://app.fixmystreet.example"

    denied = client.get("/health", headers={"Origin": "https://evil.example"})
    assert denied.status_code == 200
    assert "access-control-allow-origin" not in denied.headers

    preflight = client.options(
        "/report",
        headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "POST"},
    )
    assert preflight.status_code == 400


def test_cors_defaults_to_any_origin(client):
    resp = client.get("/health", headers={"Origin": "https://anywhere.example"})
    assert resp.headers["access-control-allow-origin"] == "*"
