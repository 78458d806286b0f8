from __future__ import annotations

import numpy as np
import pytest

from street_geocoder.grid import GridConfig, GridEstimator
from street_geocoder.interpolation import AddressInterpolator, interpolate_number
from street_geocoder.models import AddressPoint, Coordinate


class FakeSearch:
    def __init__(self, points=None, error: Exception | None = None):
        self.points = points or []
        self.error = error
        self.calls = []

    def search_by_street(self, street_name, locality, region, limit=10):
        self.calls.append((street_name, locality, region, limit))
        if self.error is not None:
            raise self.error
        return list(self.points)


# Two addresses on an east-west block, numbers growing westwards
EAST = AddressPoint(street_number=100, latitude=34.0, longitude=-118.0)
WEST = AddressPoint(street_number=200, latitude=34.0, longitude=-118.01)


def _grid() -> GridEstimator:
    return GridEstimator(GridConfig(jitter=0), rng=np.random.default_rng(7))


def test_midpoint_yields_average():
    a = AddressPoint(street_number=100, latitude=34.0, longitude=-118.0)
    b = AddressPoint(street_number=200, latitude=34.0, longitude=-118.002)
    target = Coordinate(latitude=34.0, longitude=-118.001)

    assert interpolate_number(target, [a, b]) == 150


def test_interpolator_midpoint_returns_string():
    a = AddressPoint(street_number=100, latitude=34.0, longitude=-118.0)
    b = AddressPoint(street_number=200, latitude=34.0, longitude=-118.002)
    interpolator = AddressInterpolator(FakeSearch([a, b]), _grid(), locality="Los Angeles", region="CA")

    assert interpolator.estimate(Coordinate(latitude=34.0, longitude=-118.001), "Main St") == "150"


def test_identical_points_return_first_number():
    a = AddressPoint(street_number=120, latitude=34.0, longitude=-118.0)
    b = AddressPoint(street_number=125, latitude=34.0, longitude=-118.0)
    target = Coordinate(latitude=34.001, longitude=-118.001)

    assert interpolate_number(target, [a, b]) == 120


def test_ratio_is_clamped_past_segment_end():
    target = Coordinate(latitude=34.0, longitude=-118.02)
    assert interpolate_number(target, [EAST, WEST]) == 200


def test_uses_two_nearest_candidates():
    far = AddressPoint(street_number=900, latitude=34.5, longitude=-118.5)
    target = Coordinate(latitude=34.0, longitude=-118.005)

    assert interpolate_number(target, [far, EAST, WEST]) == 150


@pytest.mark.parametrize(
    "lat,parity,expected",
    [
        # travelling east -> west, north is the right-hand side
        (34.0005, "odd", 130),
        (33.9995, "odd", 131),
        (34.0005, "even", 131),
        (33.9995, "even", 130),
    ],
)
def test_side_of_street_sets_parity(lat, parity, expected):
    target = Coordinate(latitude=lat, longitude=-118.003)
    assert interpolate_number(target, [EAST, WEST], left_side_parity=parity) == expected


def test_interpolate_number_requires_two_points():
    with pytest.raises(ValueError):
        interpolate_number(Coordinate(latitude=34.0, longitude=-118.0), [EAST])


@pytest.mark.parametrize("points", [[], [EAST]])
def test_fewer_than_two_candidates_use_grid(points):
    search = FakeSearch(points)
    interpolator = AddressInterpolator(search, _grid(), locality="Los Angeles", region="CA", limit=5)

    result = interpolator.estimate(Coordinate(latitude=34.0825, longitude=-118.4476), "Bellagio Road")

    assert result.endswith("(approx)")
    assert search.calls == [("Bellagio Road", "Los Angeles", "CA", 5)]


def test_search_failure_uses_grid():
    interpolator = AddressInterpolator(FakeSearch(error=RuntimeError("boom")), _grid())
    result = interpolator.estimate(Coordinate(latitude=34.0825, longitude=-118.4476), "Bellagio Road")
    assert result.endswith("(approx)")
    assert result.split()[0].isdigit()
