"""Logging and tracing setup for a cronscope run."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from structlog.contextvars import bind_contextvars

from .settings import InspectorSettings


SERVICE_NAME = "cronscope"


def configure_logging(settings: InspectorSettings, **context: str) -> None:
    """Route JSON structlog output to stderr at the configured level.

    Stdout carries only the report. ``context`` is bound to every event of
    the run, typically the rule pattern and cluster.
    """

    level = logging.getLevelName(settings.log_level.strip().upper())
    if not isinstance(level, int):
        level = logging.WARNING

    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(level)
    # botocore logs every request at DEBUG; keep it quiet unless asked.
    logging.getLogger("botocore").setLevel(max(level, logging.INFO))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.dict_tracebacks,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    bind_contextvars(service=SERVICE_NAME, **context)


def _otlp_headers(raw: Optional[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in (raw or "").split(","):
        key, _, value = item.partition("=")
        if key.strip() and value.strip():
            headers[key.strip()] = value.strip()
    return headers


def configure_tracing(settings: InspectorSettings) -> Optional[TracerProvider]:
    """Export per-rule spans over OTLP/HTTP when an endpoint is configured.

    Without an endpoint no SDK provider is installed and spans stay no-ops.
    """

    if not settings.otel_exporter_endpoint:
        return None

    ratio = max(0.0, min(1.0, settings.otel_sampler_ratio))
    provider = TracerProvider(
        resource=Resource.create({"service.name": SERVICE_NAME}),
        sampler=TraceIdRatioBased(ratio),
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_endpoint,
        headers=_otlp_headers(settings.otel_exporter_headers),
        timeout=max(1, int(settings.run_timeout_seconds)),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    return provider


def shutdown_tracing(provider: Optional[TracerProvider]) -> None:
    """Flush spans still queued in ``provider`` before the process exits."""

    if provider is not None:
        provider.shutdown()
