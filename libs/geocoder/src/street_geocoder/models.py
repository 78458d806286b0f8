"""Value objects shared by the address resolution pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass

_LEADING_INT = re.compile(r"^\s*(\d+)")

APPROX_MARKER = "(approx)"


@dataclass(frozen=True)
class Coordinate:
    """Geographic position reported by the device.

    Attributes:
        latitude: Decimal degrees in [-90, 90].
        longitude: Decimal degrees in [-180, 180].
        accuracy: Reported horizontal accuracy in meters (optional, >= 0).
    """

    latitude: float
    longitude: float
    accuracy: float | None = None

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")
        if self.accuracy is not None and self.accuracy < 0:
            raise ValueError(f"accuracy must be >= 0: {self.accuracy}")


@dataclass(frozen=True)
class AddressPoint:
    """Addressed location returned by a street search."""

    street_number: int
    latitude: float
    longitude: float


@dataclass(frozen=True)
class AddressComponents:
    """Normalized reverse-geocoding result.

    ``resolved`` is False when the lookup failed; every other field is then None.
    """

    house_number: str | None = None
    road: str | None = None
    neighbourhood: str | None = None
    suburb: str | None = None
    city: str | None = None
    postcode: str | None = None
    display_name: str | None = None
    resolved: bool = True

    @classmethod
    def unresolved(cls) -> "AddressComponents":
        return cls(resolved=False)


@dataclass(frozen=True)
class ResolvedAddress:
    """Best-effort mailing address for a coordinate.

    Attributes:
        street_number: Authoritative or estimated number; estimates from the grid
            fallback end with ``(approx)``.
        street_name: Road name, empty when the geocoder returned none.
        locality: Neighbourhood or suburb, empty when unknown.
        region: Region code (e.g. "CA").
        postal_code: Postal code when known.
        formatted: Comma-separated mailing address, never empty.
    """

    street_number: str | None
    street_name: str
    locality: str
    region: str
    postal_code: str | None
    formatted: str

    @property
    def is_approximate(self) -> bool:
        return bool(self.street_number) and APPROX_MARKER in self.street_number


def parse_street_number(value: object) -> int | None:
    """Return the leading integer of a house number ("123A" -> 123) or None."""

    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _LEADING_INT.match(str(value))
    if match is None:
        return None
    return int(match.group(1))
