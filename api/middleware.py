import os

import structlog
from fastapi import Request

from core.logging import REDACTED, ROUND_TRIP_PARAMS, BusinessEvents


def redact_query(params: dict) -> dict:
    return {k: (REDACTED if k in ROUND_TRIP_PARAMS else v) for k, v in params.items()}


async def log_api_entry(request: Request, call_next):
    """Middleware to log API entries with request details"""
    # Get a fresh logger each time to ensure test configurations are respected
    log = structlog.get_logger(__name__)

    quiet = os.getenv("LOG_QUERY_PARAMS", "true").lower() in {"0", "false", "no"}
    log.info(
        BusinessEvents.API_ENTRY,
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None,
        query_params=None if quiet else redact_query(dict(request.query_params)),
    )
    return await call_next(request)
