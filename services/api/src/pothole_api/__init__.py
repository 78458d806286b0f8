"""Pothole report API service package."""

from __future__ import annotations

import os
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("fix-my-street")
except PackageNotFoundError:
    __version__ = "unknown"


def main() -> None:
    """Run the report API with uvicorn.

    Honors HOST, PORT and RELOAD environment variables if provided.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload_flag = os.getenv("RELOAD", "false").lower() == "true"

    uvicorn.run("pothole_api.app:create_app", factory=True, host=host, port=port, reload=reload_flag)
