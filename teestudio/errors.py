"""
Error taxonomy for the design studio and its collaborators.

Every error is scoped to the single operation that raised it; none of them
leave a `DesignState` partially mutated. The FastAPI handler registered by
`register_exception_handlers` renders them with the same `{"detail": ...}`
body FastAPI uses for `HTTPException`.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StudioError(Exception):
    """Base class for errors surfaced to the caller of a studio operation."""
    status_code = status.HTTP_400_BAD_REQUEST
    headers = None

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidSelection(StudioError):
    """A color, size or shape outside the product's declared domain."""
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(StudioError):
    """Save or add-to-cart attempted with incomplete design state."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotAuthenticated(StudioError):
    """A mutating operation attempted without a signed-in identity."""
    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class Unavailable(StudioError):
    """Transport or backend failure on a collaborator call. Never retried here."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} failed with {type(exc).__name__}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudioError, studio_error_handler)
