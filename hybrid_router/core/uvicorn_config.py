"""Route uvicorn and OpenTelemetry exporter logs through the router's formatters"""

import logging
import os
import sys
from typing import Dict, Any

from .logger import JsonFormatter, _log_level

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

OTEL_EXPORTER_LOGGERS = (
    'opentelemetry.exporter.otlp.proto.grpc.trace_exporter',
    'opentelemetry.exporter.otlp.proto.grpc.metric_exporter',
    'opentelemetry.sdk.trace.export',
    'opentelemetry.sdk.metrics.export',
)


def get_uvicorn_log_config() -> Dict[str, Any]:
    """Build a dictConfig for uvicorn

    Console lines go to stdout and JSON to stderr, as CentralizedLogger does.
    HYBRID_ROUTER_LOG_JSON_ONLY=true drops the console handler.
    """
    json_only = os.getenv('HYBRID_ROUTER_LOG_JSON_ONLY', 'false').lower() == 'true'
    handlers = ["json"] if json_only else ["console", "json"]
    level = logging.getLevelName(_log_level())

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"()": "hybrid_router.core.logger.ConsoleFormatter"},
            "json": {"()": "hybrid_router.core.logger.JsonFormatter"},
        },
        "handlers": {
            "console": {
                "formatter": "console",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
            "json": {
                "formatter": "json",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            name: {"handlers": handlers, "level": level, "propagate": False}
            for name in UVICORN_LOGGERS
        },
    }


def configure_otel_logging():
    """Quiet exporter loggers and emit what remains as JSON"""
    for logger_name in OTEL_EXPORTER_LOGGERS:
        logger = logging.getLogger(logger_name)
        # Collector connection retries are noise when none is running
        logger.setLevel(logging.ERROR)

        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(JsonFormatter())
            logger.addHandler(handler)
