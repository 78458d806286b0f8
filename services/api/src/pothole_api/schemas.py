"""Pydantic schemas for API requests, responses and stored records.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Location(CamelModel):
    """GPS fix of the capture.

    Args:
        lat: Latitude in decimal degrees.
        lng: Longitude in decimal degrees.
        accuracy: Reported accuracy in meters (optional).
    """

    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)
    accuracy: float | None = Field(default=None, ge=0.0)


class ReportRequest(CamelModel):
    """Body of `POST /report`.

    Args:
        type: Defect type, e.g. "pothole".
        location: GPS fix.
        timestamp: Capture time as reported by the client (ISO 8601).
        image: Photo as a data URI (``data:image/jpeg;base64,...``).
        address: Client-observed address; resolved server-side when empty.
        source: Name of the submitting front end.
    """

    type: str = "pothole"
    location: Location
    timestamp: str
    image: str = Field(min_length=1)
    address: str | None = None
    source: str = "Fix My Street"


class ReportResponse(CamelModel):
    """Successful response of `POST /report`."""

    success: Literal[True] = True
    report_id: str
    map_link: str
    image_link: str | None = None
    view_link: str | None = None
    formal_letter: str
    mailto_url: str
    portal_url: str
    address: str
    message: str = "Report ready to send!"


class ErrorResponse(CamelModel):
    success: Literal[False] = False
    error: str


class SubmissionRecord(CamelModel):
    """Stored report; never mutated after creation."""

    id: str
    type: str
    location: Location
    timestamp: str
    image: str
    address: str
    source: str
    status: Literal["pending_submission"] = "pending_submission"
    created_at: str
    map_link: str
    image_link: str
    view_link: str
    formal_letter: str


class ReportView(CamelModel):
    """Stored report without the image payload, returned by `GET /view/{id}`."""

    id: str
    type: str
    location: Location
    timestamp: str
    address: str
    source: str
    status: str
    created_at: str
    map_link: str
    image_link: str
    view_link: str
    formal_letter: str


class AddressResponse(CamelModel):
    """Resolved address returned by `GET /address`."""

    street_number: str | None = None
    street_name: str
    locality: str
    region: str
    postal_code: str | None = None
    formatted: str
    approximate: bool = False
