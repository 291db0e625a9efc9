from __future__ import annotations

import os
from typing import Optional

# pacing-core works without opentelemetry installed; setup then becomes a no-op.
try:
    from opentelemetry import trace, metrics
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter as OTLPHttpSpanExporter,
    )
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
        OTLPSpanExporter as OTLPGrpcSpanExporter,
    )

    from opentelemetry.sdk.metrics import MeterProvider
    from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
    from opentelemetry.exporter.otlp.proto.http.metric_exporter import (
        OTLPMetricExporter as OTLPHttpMetricExporter,
    )
    from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
        OTLPMetricExporter as OTLPGrpcMetricExporter,
    )

    _OTEL_AVAILABLE = True
except Exception:  # pragma: no cover - graceful fallback when OTEL is missing
    _OTEL_AVAILABLE = False

    TracerProvider = object  # type: ignore[assignment,misc]
    MeterProvider = object  # type: ignore[assignment,misc]


_tracer_provider: Optional[TracerProvider] = None
_meter_provider: Optional[MeterProvider] = None


def _build_resource(service_name: str) -> "Resource":
    """Resource shared by traces and metrics; version comes from PACING_SERVICE_VERSION."""
    service_version = os.getenv("PACING_SERVICE_VERSION", "dev")
    return Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
        }
    )


# ---------------------------------------------------------------------------
# Traces
# ---------------------------------------------------------------------------


def init_tracer(service_name: str = "pacing-core", exporter: str = "http") -> None:
    """
    Install a global TracerProvider with an OTLP span exporter.

    :param service_name: logical service name
    :param exporter: "http" (default) or "grpc"
    """
    global _tracer_provider

    if not _OTEL_AVAILABLE or _tracer_provider is not None:
        return

    if exporter.lower() == "grpc":
        span_exporter = OTLPGrpcSpanExporter()
    else:
        span_exporter = OTLPHttpSpanExporter()

    provider = TracerProvider(resource=_build_resource(service_name))
    provider.add_span_processor(BatchSpanProcessor(span_exporter))

    trace.set_tracer_provider(provider)
    _tracer_provider = provider


def get_tracer(instrumentation_name: str = "pacing_core.otel_runtime"):
    """Tracer from our provider if init_tracer() ran, else from the global one."""
    if _tracer_provider is None:
        from opentelemetry import trace as _trace

        return _trace.get_tracer(instrumentation_name)
    return _tracer_provider.get_tracer(instrumentation_name)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def init_metrics(service_name: str = "pacing-core", exporter: str = "http") -> None:
    """
    Install a global MeterProvider with an OTLP metrics exporter.

    :param service_name: logical service name
    :param exporter: "http" (default) or "grpc"
    """
    global _meter_provider

    if not _OTEL_AVAILABLE or _meter_provider is not None:
        return

    if exporter.lower() == "grpc":
        metric_exporter = OTLPGrpcMetricExporter()
    else:
        metric_exporter = OTLPHttpMetricExporter()

    reader = PeriodicExportingMetricReader(metric_exporter)
    provider = MeterProvider(resource=_build_resource(service_name), metric_readers=[reader])

    metrics.set_meter_provider(provider)
    _meter_provider = provider


def get_meter(instrumentation_name: str = "pacing_core.otel_runtime"):
    """Meter, or None when OTEL is unavailable or init_metrics() never ran."""
    if not _OTEL_AVAILABLE or _meter_provider is None:
        return None
    return _meter_provider.get_meter(instrumentation_name)
