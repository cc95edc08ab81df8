"""Global error handling middleware

Routing failures surface as typed exceptions from the service layer; this
middleware turns them into JSON error bodies with a status code that tells
the caller whether to fix the request (4xx) or retry later (5xx).
"""

import uuid
import traceback
from typing import Any, Dict, Optional, Tuple, Type
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ...core.config import get_settings
from ...core.logger import CentralizedLogger
from ...services.routing.exceptions import (
    CombineError,
    EnsembleExhaustedError,
    FallbackExhaustedError,
    ProviderError,
    ProviderTimeoutError,
    RoutingError,
    RoutingValidationError,
)


logger = CentralizedLogger("ErrorHandler")

# First match wins, so subclasses come before their bases
# (ProviderTimeoutError is a ProviderError).
ERROR_STATUS: Tuple[Tuple[Type[Exception], int, str, bool], ...] = (
    (RoutingValidationError, 400, "Bad Request", False),
    (CombineError, 422, "Unprocessable Entity", False),
    (ProviderTimeoutError, 504, "Gateway Timeout", True),
    (ProviderError, 502, "Bad Gateway", True),
    (FallbackExhaustedError, 502, "Bad Gateway", True),
    (EnsembleExhaustedError, 502, "Bad Gateway", True),
    (ValueError, 400, "Bad Request", False),
    (TimeoutError, 504, "Gateway Timeout", True),
)


def classify(error: Exception) -> Optional[Tuple[int, str, bool]]:
    """Return (status, reason, is_server_side) for a known error, else None"""
    for error_type, status_code, reason, server_side in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code, reason, server_side
    return None


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware for global error handling"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            known = classify(e)
            if known is None:
                return self._unhandled(request, e)

            status_code, reason, server_side = known
            message = e.message if isinstance(e, RoutingError) else str(e)
            details = e.to_dict() if isinstance(e, RoutingError) else None

            log = logger.error if server_side else logger.warning
            log(
                f"{type(e).__name__} on {request.method} {request.url.path}: {message}",
                extra={
                    "provider": getattr(e, "provider", None),
                    "model_id": getattr(e, "model_id", None),
                },
            )

            if isinstance(e, TimeoutError) and not isinstance(e, RoutingError):
                message = "The request timed out"

            return self._error_response(
                request,
                status_code=status_code,
                error=reason,
                message=message,
                details=details
            )

    def _unhandled(self, request: Request, e: Exception) -> JSONResponse:
        error_id = str(uuid.uuid4())
        logger.error(
            f"Unhandled error [{error_id}]: {str(e)}",
            exc_info=e,
            extra={"path": request.url.path, "method": request.method}
        )

        # Don't expose internal errors in production
        if get_settings().environment == "production":
            message = "An internal error occurred"
            details = None
        else:
            message = str(e)
            details = e.to_dict() if isinstance(e, RoutingError) else {
                "type": type(e).__name__,
                "traceback": traceback.format_exception(type(e), e, e.__traceback__)
            }

        return self._error_response(
            request,
            status_code=500,
            error="Internal Server Error",
            message=message,
            error_id=error_id,
            details=details
        )

    def _error_response(
        self,
        request: Request,
        status_code: int,
        error: str,
        message: str,
        error_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> JSONResponse:
        """Create standardized error response

        Args:
            request: Request object
            status_code: HTTP status code
            error: Error type
            message: Error message
            error_id: Unique error ID
            details: Additional error details

        Returns:
            JSON error response
        """
        content = {
            "error": error,
            "message": message,
            "path": str(request.url.path),
            "method": request.method
        }

        # Set by TelemetryMiddleware when it wraps this one
        trace_id = getattr(request.state, "trace_id", None)
        if trace_id:
            content["trace_id"] = trace_id
            content["span_id"] = getattr(request.state, "span_id", None)

        if error_id:
            content["error_id"] = error_id

        if details:
            content["details"] = details

        return JSONResponse(status_code=status_code, content=content)
