"""FastAPI application setup and endpoints.

Exposes report creation, report viewing, photo download, address resolution
and health endpoints. Geocoder and S3 calls are blocking, so endpoints are
plain functions served from the thread pool.
"""

import logging
import time
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Annotated, AsyncGenerator

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from street_geocoder import (
    AddressComposer,
    AddressInterpolator,
    AddressResolver,
    Coordinate,
    Geocoder,
    GridConfig,
    GridEstimator,
)

from pothole_api import __version__
from pothole_api.errors import ReportError, ReportNotFoundError, ReportStoreError
from pothole_api.media import decode_data_uri, sniff_content_type
from pothole_api.report_builder import ReportBuilder, ReportConfig
from pothole_api.schemas import AddressResponse, ReportRequest, ReportResponse, ReportView
from pothole_api.settings import get_settings
from pothole_api.store import InMemoryReportStore, ReportStore, S3ReportStore, make_s3_client

logger = logging.getLogger(__name__)

process_start_time = time.monotonic()


@lru_cache(maxsize=1)
def get_report_store() -> ReportStore:
    """Return the shared report store selected by ``STORE_BACKEND``."""

    settings = get_settings()
    if settings.store_backend == "memory":
        return InMemoryReportStore()
    return S3ReportStore(
        client=make_s3_client(region=settings.s3_region, endpoint_url=settings.s3_endpoint_url),
        bucket=settings.s3_bucket or "",
        prefix=settings.s3_prefix,
        sse=settings.s3_sse,
    )


@lru_cache(maxsize=1)
def get_address_resolver() -> AddressResolver:
    settings = get_settings()
    geocoder = Geocoder(
        user_agent=settings.nominatim_user_agent,
        domain=settings.nominatim_domain,
        timeout=settings.geocoder_timeout_s,
        min_delay_seconds=settings.nominatim_min_delay_s,
        country_codes=settings.geocoder_country_codes,
    )
    grid = GridEstimator(
        GridConfig(
            reference=Coordinate(latitude=settings.grid_reference_lat, longitude=settings.grid_reference_lng),
            block_size_deg=settings.grid_block_size_deg,
        )
    )
    interpolator = AddressInterpolator(
        geocoder,
        grid,
        locality=settings.fallback_city,
        region=settings.region,
        limit=settings.street_search_limit,
        left_side_parity=settings.left_side_parity,
    )
    composer = AddressComposer(fallback_city=settings.fallback_city, region=settings.region)
    return AddressResolver(geocoder, interpolator, composer)


def get_report_builder(
    store: Annotated[ReportStore, Depends(get_report_store)],
    resolver: Annotated[AddressResolver, Depends(get_address_resolver)],
) -> ReportBuilder:
    settings = get_settings()
    config = ReportConfig(
        public_base_url=settings.public_base_url,
        id_prefix=settings.report_id_prefix,
        primary_recipient=settings.primary_recipient,
        secondary_recipient=settings.secondary_recipient,
        portal_url=settings.portal_url,
        department=settings.letter_department,
        signer=settings.letter_signer,
        app_name=settings.app_name,
        max_image_bytes=settings.max_image_mb * 1024 * 1024,
    )
    return ReportBuilder(store, config, address_source=resolver)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting pothole report API %s (store=%s)", __version__, settings.store_backend)

    store = get_report_store()
    if settings.s3_manage_lifecycle and isinstance(store, S3ReportStore):
        store.ensure_expiry_rule()
    yield
    logger.info("Shutting down pothole report API")


router = APIRouter()


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


async def report_error_handler(request: Request, exc: ReportError) -> JSONResponse:
    if isinstance(exc, ReportStoreError):
        logger.error("Storage failure on %s: %s", request.url.path, exc.message)
    return _failure(exc.status_code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Invalid request on %s: %s", request.url.path, exc.errors())
    return _failure(HTTP_400_BAD_REQUEST, "Failed to process report")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _failure(HTTP_500_INTERNAL_SERVER_ERROR, "Failed to process report")


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReportError, report_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


def create_app() -> FastAPI:
    """Build the API with CORS origins taken from ``CORS_ORIGINS``."""
    settings = get_settings()
    app = FastAPI(title="Fix My Street API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    setup_exception_handlers(app)
    app.include_router(router)
    return app


@router.get("/health", include_in_schema=False)
def health(response: Response) -> dict[str, str | float]:
    """Return service liveness with version and uptime in seconds."""
    response.headers["Cache-Control"] = "no-store"
    return {
        "status": "ok",
        "version": __version__,
        "uptime": time.monotonic() - process_start_time,
    }


@router.post(
    "/report",
    tags=["report"],
    summary="Prepare a pothole report",
    response_model=ReportResponse,
    response_model_by_alias=True,
)
def create_report(
    body: ReportRequest,
    builder: Annotated[ReportBuilder, Depends(get_report_builder)],
) -> ReportResponse:
    """Store a capture and return links, a formal letter and an email draft.

    The address sent by the client is used as-is; when it is empty the server
    resolves one from the coordinate.
    """
    return builder.build(body)


@router.get(
    "/address",
    tags=["address"],
    summary="Resolve a coordinate to a mailing address",
    response_model=AddressResponse,
    response_model_by_alias=True,
)
def resolve_address(
    lat: Annotated[float, Query(ge=-90.0, le=90.0)],
    lng: Annotated[float, Query(ge=-180.0, le=180.0)],
    resolver: Annotated[AddressResolver, Depends(get_address_resolver)],
) -> AddressResponse:
    resolved = resolver.resolve(Coordinate(latitude=lat, longitude=lng))
    return AddressResponse(
        street_number=resolved.street_number,
        street_name=resolved.street_name,
        locality=resolved.locality,
        region=resolved.region,
        postal_code=resolved.postal_code,
        formatted=resolved.formatted,
        approximate=resolved.is_approximate,
    )


@router.get(
    "/view/{report_id}",
    tags=["report"],
    summary="Show a stored report",
    response_model=ReportView,
    response_model_by_alias=True,
)
def view_report(
    report_id: str,
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> ReportView:
    record = store.get(report_id)
    if record is None:
        raise ReportNotFoundError()
    return ReportView.model_validate(record)


@router.get("/image/{report_id}", tags=["report"], summary="Download a report photo")
def report_image(
    report_id: str,
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> Response:
    record = store.get(report_id)
    if record is None:
        raise ReportNotFoundError()
    try:
        raw, declared = decode_data_uri(record.get("image") or "")
    except ValueError as exc:
        raise ReportNotFoundError("Report photo not available") from exc
    return Response(
        content=raw,
        media_type=sniff_content_type(raw, declared),
        headers={"Cache-Control": "public, max-age=86400"},
    )
