"""Submission package assembly for a captured pothole.

A build turns one capture into a stored record plus everything a user needs to
send it: map/photo/view links, a formal letter and a ``mailto:`` draft.
Re-submitting the same capture always creates a new record.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol
from urllib.parse import quote

import numpy as np

from street_geocoder import Coordinate, ResolvedAddress

from pothole_api.errors import ReportProcessingError
from pothole_api.media import decode_data_uri
from pothole_api.schemas import ReportRequest, ReportResponse, SubmissionRecord
from pothole_api.store import REPORT_TTL_SECONDS, ReportStore

logger = logging.getLogger(__name__)

ID_ALPHABET = string.digits + string.ascii_uppercase
ID_SUFFIX_LENGTH = 4
# Characters left unescaped by JavaScript's encodeURIComponent besides [A-Za-z0-9_.-~]
_URI_COMPONENT_SAFE = "!*'()"


class AddressSource(Protocol):
    def resolve(self, coordinate: Coordinate) -> ResolvedAddress: ...


@dataclass(frozen=True)
class ReportConfig:
    """Deployment-specific values of the submission package.

    Attributes:
        public_base_url: Base URL of this service, used for image/view links.
        id_prefix: Prefix of report identifiers.
        primary_recipient: ``To:`` address of the email draft.
        secondary_recipient: ``cc`` address of the email draft.
        portal_url: Municipal 311 portal returned to the client.
        department: Addressee of the formal letter.
        signer: Signature of the formal letter.
        app_name: Application name in the letter footer.
        max_image_bytes: Largest accepted decoded photo.
    """

    public_base_url: str = "http://localhost:8000"
    id_prefix: str = "LA"
    primary_recipient: str = "BSS.CustomerService@lacity.org"
    secondary_recipient: str = "311@lacity.org"
    portal_url: str = "https://myla311.lacity.org/portal/faces/home"
    department: str = "Los Angeles Bureau of Street Services"
    signer: str = "A Concerned Resident"
    app_name: str = "Fix My Street"
    max_image_bytes: int = 10 * 1024 * 1024


def generate_report_id(prefix: str, now_ms: int | None = None) -> str:
    """Return ``<PREFIX>-<base36 millis>-<4 random chars>``.

    Not collision-free: two ids minted in the same millisecond share all but
    the random suffix.
    """

    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"{prefix}-{np.base_repr(now_ms, 36)}-{suffix}".upper()


def map_link(latitude: float, longitude: float) -> str:
    return f"https://www.google.com/maps?q={latitude},{longitude}"


def image_link(base_url: str, report_id: str) -> str:
    return f"{base_url.rstrip('/')}/image/{quote(report_id, safe='')}"


def view_link(base_url: str, report_id: str) -> str:
    return f"{base_url.rstrip('/')}/view/{quote(report_id, safe='')}"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def letter_date(moment: datetime) -> str:
    return f"{moment:%A}, {moment:%B} {moment.day}, {moment.year}"


def render_formal_letter(
    *,
    report_id: str,
    address: str,
    latitude: float,
    longitude: float,
    captured_at: str,
    created_at: datetime,
    maps_url: str,
    photo_url: str | None,
    report_url: str | None,
    config: ReportConfig,
) -> str:
    media_lines = []
    if photo_url:
        media_lines.append(f"PHOTO: {photo_url}")
    if report_url:
        media_lines.append(f"FULL REPORT: {report_url}")
    media = ("\n".join(media_lines) + "\n\n") if media_lines else ""

    return (
        "POTHOLE REPAIR REQUEST\n"
        f"Report ID: {report_id}\n"
        f"Date: {letter_date(created_at)}\n"
        "\n"
        f"To: {config.department}\n"
        "Re: Pothole requiring immediate repair\n"
        "\n"
        "Dear Street Services Team,\n"
        "\n"
        "I am writing to report a pothole that requires repair at the following location:\n"
        "\n"
        f"ADDRESS: {address}\n"
        "\n"
        f"GPS COORDINATES: {latitude:.6f}, {longitude:.6f}\n"
        "\n"
        f"GOOGLE MAPS LINK: {maps_url}\n"
        "\n"
        f"{media}"
        "This pothole poses a safety hazard to vehicles and pedestrians in the area. "
        "A photo of the pothole is included with this report for your reference.\n"
        "\n"
        "I respectfully request that this issue be addressed at your earliest convenience.\n"
        "\n"
        "Thank you for your attention to this matter and for your service to our community.\n"
        "\n"
        "Sincerely,\n"
        f"{config.signer}\n"
        "\n"
        "---\n"
        f"Submitted via {config.app_name}\n"
        f"Report ID: {report_id}\n"
        f"Timestamp: {captured_at}"
    )


def render_mailto(
    *, report_id: str, address: str, letter: str, config: ReportConfig, street: str | None = None
) -> str:
    """Build the email draft; the subject names ``street`` or the first address field."""
    street = street or address.split(",")[0].strip()
    subject = encode_uri_component(f"Pothole Report {report_id} - {street}")
    body = encode_uri_component(letter + "\n\n[Photo attached separately - see the photo link above]")
    return (
        f"mailto:{config.primary_recipient}?cc={config.secondary_recipient}"
        f"&subject={subject}&body={body}"
    )


class ReportBuilder:
    def __init__(
        self,
        store: ReportStore,
        config: ReportConfig | None = None,
        *,
        address_source: AddressSource | None = None,
        clock: Callable[[], datetime] | None = None,
        ttl: int = REPORT_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.config = config or ReportConfig()
        self.address_source = address_source
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.ttl = ttl

    def _resolve_address(self, request: ReportRequest, coordinate: Coordinate) -> tuple[str, str | None]:
        """Return the mailing address and, when resolved here, its street line."""
        address = (request.address or "").strip()
        if address:
            return address, None
        if self.address_source is None:
            raise ReportProcessingError("Missing address")
        resolved = self.address_source.resolve(coordinate)
        street = " ".join(part for part in (resolved.street_number, resolved.street_name) if part)
        return resolved.formatted, street or None

    def build(self, request: ReportRequest) -> ReportResponse:
        """Create, persist and return a submission package.

        Raises:
            ReportProcessingError: The capture is malformed; nothing was stored.
            ReportStoreError: The record could not be persisted.
        """

        loc = request.location
        try:
            coordinate = Coordinate(latitude=loc.lat, longitude=loc.lng, accuracy=loc.accuracy)
            decode_data_uri(request.image, max_bytes=self.config.max_image_bytes)
        except ValueError as exc:
            logger.info("Rejected capture: %s", exc)
            raise ReportProcessingError() from exc

        address, street = self._resolve_address(request, coordinate)

        created_at = self.clock()
        report_id = generate_report_id(self.config.id_prefix, int(created_at.timestamp() * 1000))
        maps_url = map_link(loc.lat, loc.lng)
        photo_url = image_link(self.config.public_base_url, report_id)
        report_url = view_link(self.config.public_base_url, report_id)

        letter = render_formal_letter(
            report_id=report_id,
            address=address,
            latitude=loc.lat,
            longitude=loc.lng,
            captured_at=request.timestamp,
            created_at=created_at,
            maps_url=maps_url,
            photo_url=photo_url,
            report_url=report_url,
            config=self.config,
        )

        record = SubmissionRecord(
            id=report_id,
            type=request.type,
            location=loc,
            timestamp=request.timestamp,
            image=request.image,
            address=address,
            source=request.source,
            created_at=created_at.isoformat(),
            map_link=maps_url,
            image_link=photo_url,
            view_link=report_url,
            formal_letter=letter,
        )
        self.store.put(report_id, record.model_dump(by_alias=True), self.ttl)
        logger.info("Stored report %s from %s", report_id, request.source)

        return ReportResponse(
            report_id=report_id,
            map_link=maps_url,
            image_link=photo_url,
            view_link=report_url,
            formal_letter=letter,
            mailto_url=render_mailto(
                report_id=report_id, address=address, letter=letter, config=self.config, street=street
            ),
            portal_url=self.config.portal_url,
            address=address,
        )
