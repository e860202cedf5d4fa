"""OpenTelemetry + Prometheus fallback wiring for hexwatch."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from hexwatch import config

logger = logging.getLogger("hexwatch.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_scan_counter: Any | None = None
_scan_latency_hist: Any | None = None
_parser_failure_counter: Any | None = None
_delivery_counter: Any | None = None

_prom_enabled = False
_prom_scan_counter: Any | None = None
_prom_scan_latency_hist: Any | None = None
_prom_sessions_gauge: Any | None = None
_prom_parser_failure_counter: Any | None = None
_prom_delivery_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _scan_counter, _scan_latency_hist, _parser_failure_counter, _delivery_counter
    global _prom_enabled, _prom_scan_counter, _prom_scan_latency_hist, _prom_sessions_gauge
    global _prom_parser_failure_counter, _prom_delivery_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (HEXWATCH_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "hexwatch"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "hexwatch",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("hexwatch")

    _scan_counter = meter.create_counter(
        "hexwatch_scans_total",
        unit="1",
        description="Count of session repository scans",
    )
    _scan_latency_hist = meter.create_histogram(
        "hexwatch_scan_latency_ms",
        unit="ms",
        description="Latency of session repository scans",
    )
    _parser_failure_counter = meter.create_counter(
        "hexwatch_parser_failures_total",
        unit="1",
        description="Count of session files excluded after a parse failure",
    )
    _delivery_counter = meter.create_counter(
        "hexwatch_snapshot_deliveries_total",
        unit="1",
        description="Snapshot deliveries to subscribers by outcome",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("hexwatch")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Gauge, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_enabled = True
            _prom_scan_counter = Counter(
                "hexwatch_scans_total",
                "Count of session repository scans",
                ["result"],
            )
            _prom_scan_latency_hist = Histogram(
                "hexwatch_scan_latency_ms",
                "Latency of session repository scans",
                ["result"],
            )
            _prom_sessions_gauge = Gauge(
                "hexwatch_snapshot_sessions",
                "Sessions held in the latest snapshot",
            )
            _prom_parser_failure_counter = Counter(
                "hexwatch_parser_failures_total",
                "Count of session files excluded after a parse failure",
                ["parser"],
            )
            _prom_delivery_counter = Counter(
                "hexwatch_snapshot_deliveries_total",
                "Snapshot deliveries to subscribers by outcome",
                ["result"],
            )
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception:
        pass
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception:
        pass
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception:
        pass
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_scan(result: str, duration_ms: float, *, session_count: int = 0) -> None:
    labels = {"result": result or "unknown"}
    latency = max(0.0, float(duration_ms))
    if _enabled and _scan_counter is not None:
        _scan_counter.add(1, labels)
    if _enabled and _scan_latency_hist is not None:
        _scan_latency_hist.record(latency, labels)
    if _prom_enabled and _prom_scan_counter is not None:
        _prom_scan_counter.labels(**labels).inc()
    if _prom_enabled and _prom_scan_latency_hist is not None:
        _prom_scan_latency_hist.labels(**labels).observe(latency)
    if _prom_enabled and _prom_sessions_gauge is not None and result == "success":
        _prom_sessions_gauge.set(max(0, int(session_count)))


def record_parser_failure(parser: str) -> None:
    labels = {"parser": parser or "unknown"}
    if _enabled and _parser_failure_counter is not None:
        _parser_failure_counter.add(1, labels)
    if _prom_enabled and _prom_parser_failure_counter is not None:
        _prom_parser_failure_counter.labels(**labels).inc()


def record_delivery(result: str, count: int = 1) -> None:
    safe_count = max(0, int(count))
    if safe_count == 0:
        return
    labels = {"result": result or "unknown"}
    if _enabled and _delivery_counter is not None:
        _delivery_counter.add(safe_count, labels)
    if _prom_enabled and _prom_delivery_counter is not None:
        _prom_delivery_counter.labels(**labels).inc(safe_count)
