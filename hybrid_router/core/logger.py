"""Centralized logging with OpenTelemetry integration

Routing code logs through CentralizedLogger; records carry the active
trace/span ids plus optional ``provider`` and ``model_id`` extras so a
single request can be followed across fallback and ensemble attempts.
"""

import logging
import json
import sys
import os
from datetime import datetime, timezone
from typing import Dict, Any, Tuple
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


def current_trace_ids() -> Tuple[str, str]:
    """Return (trace_id, span_id) of the active span as hex strings"""
    span = trace.get_current_span()
    if span and span.is_recording():
        span_context = span.get_span_context()
        return format(span_context.trace_id, '032x'), format(span_context.span_id, '016x')
    return 'no-trace', 'no-span'


class ConsoleFormatter(logging.Formatter):
    """Human-readable format: HH:MM:SS | LEVEL | LOGGER | MESSAGE [provider/model]"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color:
            level = f"{color}{self.BOLD}{record.levelname}{self.RESET}"
            name = f"{color}{self.BOLD}{record.name}{self.RESET}"
        else:
            level, name = record.levelname, record.name

        line = f"{self.formatTime(record, '%H:%M:%S')} | {level:21s} | {name:20s} | {record.getMessage()}"

        provider = getattr(record, 'provider', None)
        if provider:
            model_id = getattr(record, 'model_id', None)
            line += f" [{provider}/{model_id}]" if model_id else f" [{provider}]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line for observability platforms"""

    def format(self, record):
        trace_id = getattr(record, 'trace_id', None)
        span_id = getattr(record, 'span_id', None)
        if trace_id is None:
            # Records from third-party loggers never went through CentralizedLogger
            trace_id, span_id = current_trace_ids()

        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'service': record.name,
            'message': record.getMessage(),
            'trace_id': trace_id,
            'span_id': span_id,
            'provider': getattr(record, 'provider', None),
            'model_id': getattr(record, 'model_id', None),
        }
        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def _log_level() -> int:
    return getattr(logging, os.getenv('HYBRID_ROUTER_LOG_LEVEL', 'INFO').upper(), logging.INFO)


class CentralizedLogger:
    """Central logger with trace context injection"""

    def __init__(self, service_name: str):
        self.service_name = service_name
        self.logger = logging.getLogger(service_name)

        log_level = _log_level()
        self.logger.setLevel(log_level)

        # Loggers are process-wide; only attach handlers once per name
        if self.logger.handlers:
            return

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(ConsoleFormatter())

        json_handler = logging.StreamHandler(sys.stderr)
        json_handler.setLevel(log_level)
        json_handler.setFormatter(JsonFormatter())

        self.logger.addHandler(console_handler)
        self.logger.addHandler(json_handler)

    def _inject_trace_context(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        """Inject current trace context into log extras"""
        extra = dict(kwargs.get('extra') or {})
        extra['trace_id'], extra['span_id'] = current_trace_ids()
        kwargs['extra'] = extra
        return kwargs

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, **self._inject_trace_context(kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(message, **self._inject_trace_context(kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **self._inject_trace_context(kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(message, **self._inject_trace_context(kwargs))

        # Mark the active span failed so the trace shows where routing broke
        span = trace.get_current_span()
        if span and span.is_recording():
            exc_info = kwargs.get('exc_info')
            if isinstance(exc_info, BaseException):
                span.record_exception(exc_info)
            span.set_status(Status(StatusCode.ERROR, message))

    def critical(self, message: str, **kwargs):
        self.logger.critical(message, **self._inject_trace_context(kwargs))
