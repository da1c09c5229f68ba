"""
CORS for browser-based editors.

Origins come from MJOLNIR_ALLOWED_ORIGINS. The API is stateless and uses no
cookies, so credentials are not allowed; the request id header is exposed
so a client can quote it when reporting a failure.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mjolnir.config import get_settings
from mjolnir.middleware.request_logger import REQUEST_ID_HEADER


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().allowed_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        max_age=600,
    )
