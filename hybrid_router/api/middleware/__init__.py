"""API middleware modules"""

from .telemetry import TelemetryMiddleware
from .error_handler import ErrorHandlerMiddleware

__all__ = [
    "TelemetryMiddleware",
    "ErrorHandlerMiddleware"
]
