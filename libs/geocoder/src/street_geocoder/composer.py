"""Mailing address composition from geocoded components."""

from __future__ import annotations

import logging
from typing import Protocol

from street_geocoder.models import AddressComponents, Coordinate, ResolvedAddress

logger = logging.getLogger(__name__)

DEFAULT_CITY = "Los Angeles"
DEFAULT_REGION = "CA"


class ReverseLookup(Protocol):
    def reverse_lookup(self, coordinate: Coordinate) -> AddressComponents: ...


class NumberEstimator(Protocol):
    def estimate(self, coordinate: Coordinate, street_name: str) -> str: ...


class AddressComposer:
    """Join address parts in a fixed order, with jurisdiction defaults.

    Order: house number, street, neighbourhood (else suburb), city, region,
    postal code. Empty parts are skipped; the result is never empty.
    """

    def __init__(self, *, fallback_city: str = DEFAULT_CITY, region: str = DEFAULT_REGION) -> None:
        self.fallback_city = fallback_city
        self.region = region

    @property
    def default_address(self) -> str:
        return f"{self.fallback_city}, {self.region}"

    def compose(self, components: AddressComponents, street_number: str | None = None) -> ResolvedAddress:
        number = street_number or components.house_number
        locality = components.neighbourhood or components.suburb or ""

        if not components.road:
            formatted = components.display_name or self.default_address
            return ResolvedAddress(
                street_number=None,
                street_name="",
                locality=locality,
                region=self.region,
                postal_code=components.postcode,
                formatted=formatted,
            )

        parts = [
            number,
            components.road,
            locality,
            components.city or self.fallback_city,
            self.region,
            components.postcode,
        ]
        formatted = ", ".join(p for p in parts if p)
        return ResolvedAddress(
            street_number=number,
            street_name=components.road,
            locality=locality,
            region=self.region,
            postal_code=components.postcode,
            formatted=formatted or self.default_address,
        )


class AddressResolver:
    """Coordinate -> ResolvedAddress using reverse lookup and interpolation."""

    def __init__(self, geocoder: ReverseLookup, estimator: NumberEstimator, composer: AddressComposer) -> None:
        self.geocoder = geocoder
        self.estimator = estimator
        self.composer = composer

    def resolve(self, coordinate: Coordinate) -> ResolvedAddress:
        components = self.geocoder.reverse_lookup(coordinate)
        if not components.resolved:
            logger.info("Address unresolved for %s, using default", coordinate)
            return self.composer.compose(components)

        number = components.house_number
        if not number and components.road:
            number = self.estimator.estimate(coordinate, components.road)
        return self.composer.compose(components, number)
