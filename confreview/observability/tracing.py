"""
OpenTelemetry tracer for workflow spans (``workflow.assign``, ``workflow.notify_authors`` ...)
and the per-request spans opened by the HTTP middleware.

Spans are only exported when ``CONF_TRACE_CONSOLE=1``; otherwise they are
recorded and dropped.
"""

import os

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from confreview import __version__

SERVICE_NAME = "conference-review"


def _build_provider() -> TracerProvider:
    provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME, "service.version": __version__}))
    if os.getenv("CONF_TRACE_CONSOLE", "0") == "1":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider


trace.set_tracer_provider(_build_provider())

tracer = trace.get_tracer(SERVICE_NAME, __version__)
