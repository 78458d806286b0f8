"""House-number interpolation between known addresses on a street.

Distances are planar on raw (lat, lng) degrees, which is good enough at block
scale. Street side is the sign of the 2-D cross product of the p1->p2 segment
and the p1->target vector, using (lng, lat) as (x, y): positive means the
target lies to the left when travelling from p1 towards p2.

Which parity belongs to which side depends on local numbering; it is a setting
(``left_side_parity``) rather than a fixed rule.
"""

from __future__ import annotations

import logging
import math
from typing import Literal, Protocol, Sequence

import numpy as np

from street_geocoder.grid import GridEstimator
from street_geocoder.models import AddressPoint, Coordinate

logger = logging.getLogger(__name__)

Parity = Literal["odd", "even"]


class StreetSearch(Protocol):
    def search_by_street(
        self, street_name: str, locality: str | None, region: str | None, limit: int = 10
    ) -> list[AddressPoint]: ...


def _xy(lat: float, lng: float) -> np.ndarray:
    return np.array([lng, lat], dtype=np.float64)


def _parity_matches(number: int, parity: Parity) -> bool:
    return (number % 2 == 1) == (parity == "odd")


def interpolate_number(
    target: Coordinate,
    points: Sequence[AddressPoint],
    *,
    left_side_parity: Parity = "odd",
) -> int:
    """Estimate a street number at ``target`` from at least two addressed points.

    Raises:
        ValueError: If fewer than two points are given.
    """

    if len(points) < 2:
        raise ValueError("need at least two address points")

    t = _xy(target.latitude, target.longitude)
    ranked = sorted(points, key=lambda p: float(np.linalg.norm(_xy(p.latitude, p.longitude) - t)))
    p1, p2 = ranked[0], ranked[1]

    a = _xy(p1.latitude, p1.longitude)
    b = _xy(p2.latitude, p2.longitude)
    seg = b - a
    seg_len_sq = float(np.dot(seg, seg))
    if seg_len_sq == 0.0:
        return p1.street_number

    rel = t - a
    ratio = min(max(float(np.dot(rel, seg)) / seg_len_sq, 0.0), 1.0)
    estimate = int(math.floor(p1.street_number + (p2.street_number - p1.street_number) * ratio + 0.5))

    side = float(seg[0] * rel[1] - seg[1] * rel[0])
    if side == 0.0:
        return estimate

    right_side_parity: Parity = "even" if left_side_parity == "odd" else "odd"
    expected = left_side_parity if side > 0 else right_side_parity
    if not _parity_matches(estimate, expected):
        estimate += 1
    return estimate


class AddressInterpolator:
    """Estimate a street number near a coordinate; never raises.

    Uses nearby addressed points from a street search when at least two exist,
    otherwise the grid fallback.
    """

    def __init__(
        self,
        search: StreetSearch,
        grid: GridEstimator | None = None,
        *,
        locality: str | None = None,
        region: str | None = None,
        limit: int = 10,
        left_side_parity: Parity = "odd",
    ) -> None:
        self.search = search
        self.grid = grid or GridEstimator()
        self.locality = locality
        self.region = region
        self.limit = limit
        self.left_side_parity = left_side_parity

    def estimate(self, coordinate: Coordinate, street_name: str) -> str:
        try:
            candidates = self.search.search_by_street(street_name, self.locality, self.region, self.limit)
            points = [p for p in candidates if isinstance(p.street_number, int)]
            if len(points) < 2:
                logger.info("Only %d addressed points on %r, using grid estimate", len(points), street_name)
                return self.grid.estimate(coordinate, street_name)
            number = interpolate_number(coordinate, points, left_side_parity=self.left_side_parity)
            return str(number)
        except Exception:
            logger.warning("Interpolation failed for %r, using grid estimate", street_name, exc_info=True)
            return self.grid.estimate(coordinate, street_name)
