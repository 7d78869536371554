"""API error handling: renders billing errors as JSON error bodies."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fleetledger.services.errors import BillingError, error_response

logger = logging.getLogger(__name__)


async def billing_error_handler(request: Request, exc: BillingError) -> JSONResponse:
    """Map a BillingError to its HTTP status and {"error": {code, message}} body."""
    logger.warning(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        exc.http_status,
        exc.code,
        exc.message,
    )
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillingError, billing_error_handler)


__all__ = ["billing_error_handler", "register_error_handlers"]
