"""
Street address resolution library.

Reverse geocoding, house-number interpolation and mailing address composition
for street defect reports.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("fix-my-street")
except PackageNotFoundError:
    __version__ = "unknown"

# Public API re-exports
from .composer import AddressComposer, AddressResolver
from .geocoder import Geocoder
from .grid import GridConfig, GridEstimator
from .interpolation import AddressInterpolator, interpolate_number
from .models import (
    APPROX_MARKER,
    AddressComponents,
    AddressPoint,
    Coordinate,
    ResolvedAddress,
)

__all__ = [
    "__version__",
    "APPROX_MARKER",
    "AddressComponents",
    "AddressComposer",
    "AddressInterpolator",
    "AddressPoint",
    "AddressResolver",
    "Coordinate",
    "Geocoder",
    "GridConfig",
    "GridEstimator",
    "ResolvedAddress",
    "interpolate_number",
]
