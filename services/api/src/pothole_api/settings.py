"""Service settings loaded from environment variables.

Provides a cached accessor for jurisdiction, geocoder, letter and storage
configuration. Jurisdiction values (recipients, city, region) live here so the
report pipeline stays independent of any one deployment.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Immutable application settings.

    Attributes:
        public_base_url: Base URL used to build image/view links.
        report_id_prefix: Prefix of generated report identifiers (e.g., "LA").
        primary_recipient: Email address of the street service desk.
        secondary_recipient: Email address of the general 311 hotline (cc).
        portal_url: Web portal of the municipal 311 service.
        letter_department: Addressee line of the formal letter.
        letter_signer: Signature line of the formal letter.
        app_name: Application name shown in the letter footer.
        fallback_city: City used when the geocoder returns none.
        region: Region code appended to every address (e.g., "CA").
        nominatim_user_agent: User agent sent to Nominatim.
        nominatim_domain: Custom Nominatim host (optional).
        geocoder_timeout_s: Timeout in seconds for each geocoder call.
        nominatim_min_delay_s: Minimum spacing in seconds between Nominatim calls.
        geocoder_country_codes: Country filter for street searches.
        street_search_limit: Max candidates fetched for interpolation.
        left_side_parity: Parity ("odd"/"even") of numbers on the left side of a street.
        grid_reference_lat: Latitude of the downtown grid origin.
        grid_reference_lng: Longitude of the downtown grid origin.
        grid_block_size_deg: Block size quantum in degrees.
        store_backend: "s3" or "memory".
        s3_bucket: Target S3 bucket for report records.
        s3_region: AWS region for the S3 client.
        s3_prefix: Key prefix for stored records (e.g., "reports/").
        s3_endpoint_url: Custom S3 endpoint (optional, e.g., for localstack).
        s3_sse: Server-side encryption algorithm (e.g., "AES256").
        s3_manage_lifecycle: Install the expiry lifecycle rule at startup.
        max_image_mb: Maximum decoded photo size in megabytes.
        cors_origins: Allowed CORS origins.
        log_level: Root logging level.
    """

    public_base_url: str
    report_id_prefix: str
    primary_recipient: str
    secondary_recipient: str
    portal_url: str
    letter_department: str
    letter_signer: str
    app_name: str
    fallback_city: str
    region: str
    nominatim_user_agent: str
    nominatim_domain: str | None
    geocoder_timeout_s: float
    nominatim_min_delay_s: float
    geocoder_country_codes: str | None
    street_search_limit: int
    left_side_parity: str
    grid_reference_lat: float
    grid_reference_lng: float
    grid_block_size_deg: float
    store_backend: str
    s3_bucket: str | None
    s3_region: str | None
    s3_prefix: str
    s3_endpoint_url: str | None
    s3_sse: str | None
    s3_manage_lifecycle: bool
    max_image_mb: int
    cors_origins: tuple[str, ...]
    log_level: str


def _get_env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer for {name}: {value}") from exc


def _get_env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid number for {name}: {value}") from exc


def _get_env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment, validate, and cache the result.

    Raises:
        RuntimeError: If variables are missing or invalid.

    Returns:
        Settings: Frozen settings instance.
    """

    store_backend = os.environ.get("STORE_BACKEND", "s3").lower()
    if store_backend not in {"s3", "memory"}:
        raise RuntimeError(f"Invalid STORE_BACKEND: {store_backend}")

    s3_bucket = os.environ.get("S3_BUCKET")
    if store_backend == "s3" and not s3_bucket:
        raise RuntimeError("S3_BUCKET is required when STORE_BACKEND=s3")

    left_side_parity = os.environ.get("LEFT_SIDE_PARITY", "odd").lower()
    if left_side_parity not in {"odd", "even"}:
        raise RuntimeError(f"Invalid LEFT_SIDE_PARITY: {left_side_parity}")

    cors = os.environ.get("CORS_ORIGINS", "*")

    return Settings(
        public_base_url=os.environ.get("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        report_id_prefix=os.environ.get("REPORT_ID_PREFIX", "LA"),
        primary_recipient=os.environ.get("PRIMARY_RECIPIENT", "BSS.CustomerService@lacity.org"),
        secondary_recipient=os.environ.get("SECONDARY_RECIPIENT", "311@lacity.org"),
        portal_url=os.environ.get("PORTAL_URL", "https://myla311.lacity.org/portal/faces/home"),
        letter_department=os.environ.get("LETTER_DEPARTMENT", "Los Angeles Bureau of Street Services"),
        letter_signer=os.environ.get("LETTER_SIGNER", "A Concerned Resident"),
        app_name=os.environ.get("APP_NAME", "Fix My Street"),
        fallback_city=os.environ.get("FALLBACK_CITY", "Los Angeles"),
        region=os.environ.get("REGION", "CA"),
        nominatim_user_agent=os.environ.get("NOMINATIM_USER_AGENT", "fix-my-street"),
        nominatim_domain=os.environ.get("NOMINATIM_DOMAIN"),
        geocoder_timeout_s=_get_env_float("GEOCODER_TIMEOUT_S", 5.0),
        nominatim_min_delay_s=_get_env_float("NOMINATIM_MIN_DELAY_S", 1.0),
        geocoder_country_codes=os.environ.get("GEOCODER_COUNTRY_CODES", "us") or None,
        street_search_limit=_get_env_int("STREET_SEARCH_LIMIT", 10),
        left_side_parity=left_side_parity,
        grid_reference_lat=_get_env_float("GRID_REFERENCE_LAT", 34.0537),
        grid_reference_lng=_get_env_float("GRID_REFERENCE_LNG", -118.2427),
        grid_block_size_deg=_get_env_float("GRID_BLOCK_SIZE_DEG", 0.0015),
        store_backend=store_backend,
        s3_bucket=s3_bucket,
        s3_region=os.environ.get("S3_REGION"),
        s3_prefix=os.environ.get("S3_PREFIX", "reports/"),
        s3_endpoint_url=os.environ.get("S3_ENDPOINT_URL"),
        s3_sse=os.environ.get("S3_SSE"),
        s3_manage_lifecycle=_get_env_bool("S3_MANAGE_LIFECYCLE", False),
        max_image_mb=_get_env_int("MAX_IMAGE_MB", 10),
        cors_origins=tuple(o.strip() for o in cors.split(",") if o.strip()),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
