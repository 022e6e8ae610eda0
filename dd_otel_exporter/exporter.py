import platform
from typing import TYPE_CHECKING
from typing import Dict
from typing import Optional
from typing import Sequence

from opentelemetry.sdk.trace.export import SpanExporter
from opentelemetry.sdk.trace.export import SpanExportResult

from .internal.encoding import EncodingError
from .internal.encoding import encode
from .internal.http import AgentHTTPClient
from .internal.http import HttpClient
from .internal.http import Request
from .internal.logger import get_logger
from .settings import ExporterConfig
from .version import __version__


if TYPE_CHECKING:  # pragma: no cover
    from opentelemetry.sdk.trace import ReadableSpan


log = get_logger(__name__)


def _meta_headers():
    # type: () -> Dict[str, str]
    return {
        "Datadog-Meta-Lang": "python",
        "Datadog-Meta-Lang-Version": platform.python_version(),
        "Datadog-Meta-Lang-Interpreter": platform.python_implementation(),
        "Datadog-Meta-Tracer-Version": __version__,
    }


class DatadogExporter(SpanExporter):
    """OpenTelemetry span exporter sending traces to a Datadog Agent.

    Every call to :meth:`export` encodes the whole batch with the configured
    agent API version and sends it in a single request. Failures are never
    retried: a batch that cannot be encoded or sent is reported as
    ``SpanExportResult.FAILURE``.
    """

    HTTP_METHOD = "POST"

    def __init__(self, config=None, client=None):
        # type: (Optional[ExporterConfig], Optional[HttpClient]) -> None
        self.config = config if config is not None else ExporterConfig.from_env()
        self.client = client if client is not None else AgentHTTPClient(timeout=self.config.timeout)
        self._headers = _meta_headers()
        self._shutdown = False

    def __repr__(self):
        return "{0}(service_name={1!r}, url={2!r}, client={3!r})".format(
            self.__class__.__name__, self.config.service_name, self.config.request_url, self.client
        )

    def _build_request(self, payload, content_type, count):
        # type: (bytes, str, int) -> Request
        headers = self._headers.copy()
        headers["Content-Type"] = content_type
        headers["X-Datadog-Trace-Count"] = str(count)
        return Request(
            method=self.HTTP_METHOD,
            url=self.config.agent_endpoint,
            path=self.config.version.path,
            body=payload,
            headers=headers,
        )

    def export(self, spans):
        # type: (Sequence[ReadableSpan]) -> SpanExportResult
        if self._shutdown:
            log.warning("exporter already shutdown, dropping %d spans", len(spans))
            return SpanExportResult.FAILURE

        if not spans:
            return SpanExportResult.SUCCESS

        version = self.config.version
        try:
            payload, content_type = encode(version, self.config.service_name, spans)
        except EncodingError:
            log.error("failed to encode %d spans with agent API %s", len(spans), version.value, exc_info=True)
            return SpanExportResult.FAILURE

        trace_count = len({span.context.trace_id for span in spans})
        request = self._build_request(payload, content_type, trace_count)
        try:
            return self.client.send(request)
        except Exception:
            log.error("%r failed to send traces to %s", self.client, request.full_url, exc_info=True)
            return SpanExportResult.FAILURE

    def shutdown(self):
        # type: () -> None
        if self._shutdown:
            return
        self._shutdown = True
        self.client.close()

    def force_flush(self, timeout_millis=30000):
        # type: (int) -> bool
        # nothing is buffered, every export is sent right away
        return True

