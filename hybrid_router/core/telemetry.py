"""OpenTelemetry setup and configuration"""

from typing import Optional, Tuple

from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from .config import Settings, get_settings

_providers: Optional[Tuple[TracerProvider, MeterProvider]] = None


def setup_telemetry(settings: Optional[Settings] = None):
    """Install OTLP trace/metric exporters and instrument httpx

    No-op when telemetry is disabled or already set up.
    """
    global _providers
    settings = settings or get_settings()
    config = settings.telemetry

    if not config.enabled or _providers is not None:
        return

    resource = Resource.create({
        "service.name": config.service_name,
        "service.version": settings.app_version,
        "deployment.environment": settings.environment,
    })

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_endpoint, insecure=config.otlp_insecure))
    )
    trace.set_tracer_provider(tracer_provider)

    # routing.requests / routing.request.duration are exported from here
    metric_reader = PeriodicExportingMetricReader(
        exporter=OTLPMetricExporter(endpoint=config.otlp_endpoint, insecure=config.otlp_insecure),
        export_interval_millis=config.metric_export_interval_ms
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)

    # Ollama calls go through httpx; the SDK clients of the hosted providers do too
    HTTPXClientInstrumentor().instrument()

    _providers = (tracer_provider, meter_provider)


def shutdown_telemetry():
    """Flush pending spans and metrics"""
    global _providers
    if _providers is None:
        return

    tracer_provider, meter_provider = _providers
    tracer_provider.shutdown()
    meter_provider.shutdown()
    HTTPXClientInstrumentor().uninstrument()
    _providers = None


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def get_meter(name: str) -> metrics.Meter:
    return metrics.get_meter(name)
