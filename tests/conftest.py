from __future__ import annotations

import base64
from io import BytesIO

import pytest
from geopy.location import Location
from PIL import Image

from pothole_api.settings import get_settings


class FakeNominatim:
    """Stands in for geopy's Nominatim; records calls and replays canned results."""

    def __init__(self, reverse_result=None, geocode_result=None, error: Exception | None = None):
        self.reverse_result = reverse_result
        self.geocode_result = geocode_result
        self.error = error
        self.reverse_calls: list[tuple] = []
        self.geocode_calls: list[tuple] = []

    def reverse(self, query, **kwargs):
        self.reverse_calls.append((query, kwargs))
        if self.error is not None:
            raise self.error
        return self.reverse_result

    def geocode(self, query, **kwargs):
        self.geocode_calls.append((query, kwargs))
        if self.error is not None:
            raise self.error
        return self.geocode_result


def make_location(lat: float, lng: float, address: dict | None = None, display_name: str = "") -> Location:
    raw = {"lat": str(lat), "lon": str(lng), "display_name": display_name}
    if address is not None:
        raw["address"] = address
    return Location(display_name, (lat, lng, 0.0), raw)


def make_data_uri(fmt: str = "JPEG", mime: str = "image/jpeg") -> str:
    buf = BytesIO()
    Image.new("RGB", (4, 4), color=(90, 90, 90)).save(buf, format=fmt)
    return f"data:{mime};base64," + base64.b64encode(buf.getvalue()).decode("ascii")


@pytest.fixture(autouse=True)
def service_env(monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://fixmystreet.example")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def jpeg_data_uri() -> str:
    return make_data_uri()
