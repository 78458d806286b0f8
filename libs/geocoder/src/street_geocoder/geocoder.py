"""Reverse and street-search geocoding on top of OpenStreetMap Nominatim."""

from __future__ import annotations

import logging
from typing import Any

from geopy import Nominatim
from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter
from geopy.location import Location

from street_geocoder.models import AddressComponents, AddressPoint, Coordinate, parse_street_number

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "fix-my-street"

# Nominatim usage policy: at most one request per second.
DEFAULT_MIN_DELAY_SECONDS = 1.0


class Geocoder:
    """Thin Nominatim wrapper that never raises past its methods.

    Failures (timeouts, unavailable service, malformed payloads) are logged and
    reported as an unresolved result or an empty candidate list so callers can
    fall back to heuristics.

    Reverse lookups and street searches share one rate limiter, so calls from
    any thread are spaced at least ``min_delay_seconds`` apart.
    """

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        domain: str | None = None,
        timeout: float = 5.0,
        language: str = "en",
        country_codes: str | None = "us",
        geolocator: Any = None,
        min_delay_seconds: float = DEFAULT_MIN_DELAY_SECONDS,
    ) -> None:
        if geolocator is None:
            kwargs: dict[str, Any] = {"user_agent": user_agent, "timeout": timeout}
            if domain:
                kwargs["domain"] = domain
            geolocator = Nominatim(**kwargs)
        self.g = geolocator
        self.language = language
        self.country_codes = country_codes
        self._throttled = RateLimiter(
            _invoke,
            min_delay_seconds=min_delay_seconds,
            max_retries=0,
            swallow_exceptions=False,
        )

    def reverse_lookup(self, coordinate: Coordinate) -> AddressComponents:
        """Resolve a coordinate to address components.

        Returns:
            AddressComponents; ``resolved`` is False if the lookup failed or
            returned nothing.
        """

        try:
            location = self._throttled(
                self.g.reverse,
                (coordinate.latitude, coordinate.longitude),
                exactly_one=True,
                language=self.language,
                addressdetails=True,
            )
        except GeopyError as exc:
            logger.warning("Reverse geocoding failed for %s: %s", coordinate, exc)
            return AddressComponents.unresolved()

        if location is None:
            return AddressComponents.unresolved()

        try:
            return _components_from_raw(location.raw)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Unexpected reverse geocoding payload: %s", exc)
            return AddressComponents.unresolved()

    def search_by_street(
        self,
        street_name: str,
        locality: str | None,
        region: str | None,
        limit: int = 10,
    ) -> list[AddressPoint]:
        """Find addressed points along a street.

        Candidates without a numeric house number are dropped; order follows the
        geocoder's ranking.
        """

        if not street_name or not street_name.strip():
            return []

        query: dict[str, str] = {"street": street_name.strip()}
        if locality:
            query["city"] = locality
        if region:
            query["state"] = region

        try:
            locations = self._throttled(
                self.g.geocode,
                query,
                exactly_one=False,
                limit=limit,
                addressdetails=True,
                language=self.language,
                country_codes=self.country_codes,
            )
        except GeopyError as exc:
            logger.warning("Street search failed for %r: %s", street_name, exc)
            return []

        points: list[AddressPoint] = []
        for location in locations or []:
            point = _point_from_location(location)
            if point is not None:
                points.append(point)
        return points[:limit]


def _invoke(fn: Any, *args: Any, **kwargs: Any) -> Any:
    return fn(*args, **kwargs)


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _components_from_raw(raw: dict[str, Any]) -> AddressComponents:
    address = raw.get("address") or {}
    display_name = _clean(raw.get("display_name"))
    if not isinstance(address, dict):
        address = {}

    return AddressComponents(
        house_number=_clean(address.get("house_number")),
        road=_clean(address.get("road")),
        neighbourhood=_clean(address.get("neighbourhood")),
        suburb=_clean(address.get("suburb")),
        city=_clean(address.get("city") or address.get("town") or address.get("village")),
        postcode=_clean(address.get("postcode")),
        display_name=display_name,
        resolved=bool(address) or display_name is not None,
    )


def _point_from_location(location: Location) -> AddressPoint | None:
    try:
        address = location.raw.get("address") or {}
        number = parse_street_number(address.get("house_number"))
        if number is None:
            return None
        return AddressPoint(
            street_number=number,
            latitude=float(location.latitude),
            longitude=float(location.longitude),
        )
    except (AttributeError, TypeError, ValueError):
        return None
