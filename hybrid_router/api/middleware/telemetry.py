"""Telemetry middleware for W3C trace context propagation"""

import uuid
from typing import Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ...core.logger import CentralizedLogger


logger = CentralizedLogger("TelemetryMiddleware")
tracer = trace.get_tracer(__name__)


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Wraps each request in a span and echoes trace ids on the response"""

    async def dispatch(self, request: Request, call_next):
        """Process request with trace context

        Args:
            request: Incoming request
            call_next: Next middleware/handler

        Returns:
            Response with trace headers
        """
        with tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            attributes={
                "http.method": request.method,
                "http.target": request.url.path,
                "http.scheme": request.url.scheme,
            }
        ) as span:
            trace_id, span_id = self._trace_ids(request, span)
            request.state.trace_id = trace_id
            request.state.span_id = span_id

            try:
                response = await call_next(request)
            except Exception as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
            else:
                span.set_status(Status(StatusCode.OK))
            span.set_attribute("http.status_code", response.status_code)

            response.headers["X-Trace-Id"] = trace_id
            response.headers["X-Span-Id"] = span_id
            response.headers["traceparent"] = f"00-{trace_id}-{span_id}-01"

            logger.debug(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"(trace: {trace_id})"
            )
            return response

    @staticmethod
    def _trace_ids(request: Request, span) -> Tuple[str, str]:
        """Use the active span's ids, else the caller's traceparent, else fresh ids"""
        context = span.get_span_context()
        if context.is_valid:
            return format(context.trace_id, "032x"), format(context.span_id, "016x")

        # Tracing disabled: keep the caller's trace id so logs still correlate
        traceparent = request.headers.get("traceparent", "")
        parts = traceparent.split("-")
        if len(parts) >= 4 and len(parts[1]) == 32:
            return parts[1], uuid.uuid4().hex[:16]

        return request.headers.get("X-Trace-Id") or uuid.uuid4().hex, uuid.uuid4().hex[:16]
