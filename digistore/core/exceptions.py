"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional


class DigistoreException(HTTPException):
    """Base exception class for the storefront service"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class BadRequestException(DigistoreException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )


class UnauthorizedException(DigistoreException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )


class NotFoundException(DigistoreException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )


class ConflictException(DigistoreException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )


class BadGatewayException(DigistoreException):
    """502 Bad Gateway"""

    def __init__(
        self,
        detail: str = "Upstream unreachable",
        error_code: str = "UPSTREAM_UNREACHABLE"
    ):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code=error_code
        )


class ServiceUnavailableException(DigistoreException):
    """503 Service Unavailable"""

    def __init__(
        self,
        detail: str = "Service temporarily unavailable",
        error_code: str = "SERVICE_UNAVAILABLE"
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code
        )


class GatewayTimeoutException(DigistoreException):
    """504 Gateway Timeout"""

    def __init__(
        self,
        detail: str = "Resource unavailable offline",
        error_code: str = "GATEWAY_TIMEOUT"
    ):
        super().__init__(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=detail,
            error_code=error_code
        )


# Backend exceptions
class BackendUnavailableError(ServiceUnavailableException):
    """Backend API could not be reached or failed server-side"""

    def __init__(self, detail: str = "Backend API unavailable"):
        super().__init__(
            detail=detail,
            error_code="BACKEND_UNAVAILABLE"
        )


class SessionExpiredException(UnauthorizedException):
    """Token refresh failed; stored credentials were cleared"""

    def __init__(self, detail: str = "Session expired, please log in again"):
        super().__init__(
            detail=detail,
            error_code="SESSION_EXPIRED"
        )


class PrecacheError(BadGatewayException):
    """An install-time asset could not be fetched"""

    def __init__(self, url: str, reason: str):
        super().__init__(
            detail=f"Failed to precache {url}: {reason}",
            error_code="PRECACHE_FAILED"
        )
        self.url = url


def error_body(exc: DigistoreException, request: Request) -> Dict[str, Any]:
    return {
        "error": {
            "code": exc.error_code,
            "message": exc.detail,
            "request_id": getattr(request.state, "request_id", None)
        }
    }


async def digistore_exception_handler(request: Request, exc: DigistoreException) -> JSONResponse:
    """Render application exceptions in the common error envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc, request),
        headers=exc.headers
    )
