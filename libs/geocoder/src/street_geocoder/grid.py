"""Fallback street-number estimate from a city block grid.

This is a rough civic heuristic, not a geodetic model. Numbers grow by a fixed
amount per block away from a downtown reference point; its output is tagged
``(approx)`` and must never be treated as authoritative.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from street_geocoder.models import APPROX_MARKER, Coordinate

# Los Angeles City Hall
DEFAULT_REFERENCE = Coordinate(latitude=34.0537, longitude=-118.2427)

NS_PREFIXES = frozenset({"n", "s", "north", "south"})
EW_PREFIXES = frozenset({"e", "w", "east", "west"})


class Orientation(str, Enum):
    NORTH_SOUTH = "north_south"
    EAST_WEST = "east_west"


@dataclass(frozen=True)
class GridConfig:
    """Parameters of the block grid.

    Attributes:
        reference: Downtown origin of the numbering grid.
        block_size_deg: Distance quantum of one block, in degrees.
        base: Number assigned at the reference point.
        per_block: Number increment per block.
        jitter: Exclusive upper bound of the random offset added to estimates.
        ns_suffixes: Street-type suffixes treated as north-south streets.
        ew_suffixes: Street-type suffixes treated as east-west streets.
    """

    reference: Coordinate = DEFAULT_REFERENCE
    block_size_deg: float = 0.0015
    base: int = 100
    per_block: int = 100
    jitter: int = 50
    ns_suffixes: frozenset[str] = field(default_factory=lambda: frozenset({"ave", "avenue"}))
    ew_suffixes: frozenset[str] = field(
        default_factory=lambda: frozenset({"st", "street", "blvd", "boulevard", "pl", "place"})
    )


def round_to_nearest_10(value: float) -> int:
    return int(math.floor(value / 10.0 + 0.5)) * 10


def street_orientation(street_name: str, config: GridConfig) -> Orientation:
    """Guess whether a street runs north-south or east-west from its name.

    A leading directional token wins; otherwise the street-type suffix decides.
    Unknown names default to east-west.
    """

    tokens = [t.strip(".").lower() for t in street_name.split() if t.strip(".")]
    if not tokens:
        return Orientation.EAST_WEST
    if tokens[0] in NS_PREFIXES:
        return Orientation.NORTH_SOUTH
    if tokens[0] in EW_PREFIXES:
        return Orientation.EAST_WEST
    if tokens[-1] in config.ns_suffixes:
        return Orientation.NORTH_SOUTH
    return Orientation.EAST_WEST


class GridEstimator:
    def __init__(self, config: GridConfig | None = None, rng: np.random.Generator | None = None) -> None:
        self.config = config or GridConfig()
        self.rng = rng if rng is not None else np.random.default_rng()

    def block_number(self, coordinate: Coordinate, street_name: str) -> int:
        """Return the grid number for a coordinate, always a multiple of 10."""

        cfg = self.config
        if street_orientation(street_name, cfg) is Orientation.NORTH_SOUTH:
            delta = coordinate.longitude - cfg.reference.longitude
        else:
            delta = coordinate.latitude - cfg.reference.latitude
        blocks = abs(delta) / cfg.block_size_deg
        return round_to_nearest_10(cfg.base + blocks * cfg.per_block)

    def estimate(self, coordinate: Coordinate, street_name: str) -> str:
        """Return an ``(approx)``-tagged street number such as ``"1230 (approx)"``."""

        offset = int(self.rng.integers(0, self.config.jitter)) if self.config.jitter > 0 else 0
        number = self.block_number(coordinate, street_name) + offset
        return f"{number} {APPROX_MARKER}"
