"""
Error taxonomy shared by every endpoint.

Each failure is raised as a ServiceError carrying a short code and a
human-readable message; the app renders it as {"detail": ..., "code": ...}.
"""
import logging
from typing import Optional, Dict

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "invalid-argument": status.HTTP_400_BAD_REQUEST,
    "failed-precondition": status.HTTP_400_BAD_REQUEST,
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "permission-denied": status.HTTP_403_FORBIDDEN,
    "not-found": status.HTTP_404_NOT_FOUND,
    "deadline-exceeded": status.HTTP_504_GATEWAY_TIMEOUT,
    "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "internal": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ServiceError(HTTPException):
    def __init__(self, code: str, message: str, headers: Optional[Dict[str, str]] = None):
        if code not in ERROR_STATUS:
            raise ValueError(f"Unknown error code: {code}")
        super().__init__(status_code=ERROR_STATUS[code], detail=message, headers=headers)
        self.code = code
        self.message = message


def internal_error(error: Exception) -> ServiceError:
    """Rewrap an unexpected exception, keeping its message for the caller."""
    return ServiceError("internal", str(error) or "Unknown error")


async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid payload: {location} {first.get('msg', '')}".strip()
    else:
        message = "Invalid payload."
    logger.info(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(
        status_code=ERROR_STATUS["invalid-argument"],
        content={"detail": message, "code": "invalid-argument"},
    )
