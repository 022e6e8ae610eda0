"""
Datadog exporter for OpenTelemetry
==================================

Export OpenTelemetry spans to a Datadog Agent, using either the v0.3 or the
v0.5 (default) agent trace API.

Datadog expects a single primary operation name per service, with the
resource carrying the granular name of the unit of work. Every span is hence
named ``opentelemetry-datadog`` and the OpenTelemetry span name is used as
its resource. The ``span.type`` attribute sets the Datadog span type, and the
``service.name`` attribute overrides the configured service of a span.

Trace ids are truncated to their low-order 64 bits.
"""
from .exporter import DatadogExporter
from .internal.encoding import ApiVersion
from .internal.encoding import EncodingError
from .internal.http import AgentHTTPClient
from .internal.http import HttpClient
from .internal.http import Request
from .pipeline import DatadogPipeline
from .pipeline import Uninstall
from .pipeline import new_pipeline
from .settings import ExporterConfig
from .version import __version__


__all__ = [
    "AgentHTTPClient",
    "ApiVersion",
    "DatadogExporter",
    "DatadogPipeline",
    "EncodingError",
    "ExporterConfig",
    "HttpClient",
    "Request",
    "Uninstall",
    "__version__",
    "new_pipeline",
]
