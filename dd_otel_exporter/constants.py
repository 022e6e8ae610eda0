"""
This module contains constants used across dd_otel_exporter.

Constants that should NOT be referenced by users are marked with a leading underscore.
"""
# Name given to every Datadog span and to the tracer returned by the pipeline.
# Datadog expects one primary operation name per service, the OpenTelemetry
# span name is carried by the resource instead.
INSTRUMENTATION_NAME = "opentelemetry-datadog"

DEFAULT_SERVICE_NAME = "OpenTelemetry"
DEFAULT_AGENT_ENDPOINT = "http://127.0.0.1:8126"
DEFAULT_TIMEOUT = 2.0

SERVICE_KEY = "service.name"
SPAN_TYPE_KEY = "span.type"

ERROR_MSG = "error.message"  # a string representing the error message

_MAX_UINT64 = (1 << 64) - 1
