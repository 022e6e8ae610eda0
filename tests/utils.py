import contextlib
import os

import msgpack
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExportResult
from opentelemetry.trace import SpanContext
from opentelemetry.trace import SpanKind
from opentelemetry.trace import Status
from opentelemetry.trace import StatusCode
from opentelemetry.trace import TraceFlags

from dd_otel_exporter.internal.http import HttpClient


START_NS = 1_600_000_000_000_000_000


def make_span(
    name="GET /users",
    trace_id=0x0102030405060708090A0B0C0D0E0F10,
    span_id=0x42,
    parent_id=None,
    attributes=None,
    status=None,
    start_time=START_NS,
    duration=1_500_000,
    end_time=None,
    kind=SpanKind.INTERNAL,
):
    """Build a finished span the way the SDK hands it to exporters."""
    context = SpanContext(trace_id, span_id, is_remote=False, trace_flags=TraceFlags(TraceFlags.SAMPLED))
    parent = None
    if parent_id is not None:
        parent = SpanContext(trace_id, parent_id, is_remote=False, trace_flags=TraceFlags(TraceFlags.SAMPLED))
    if end_time is None and duration is not None and start_time is not None:
        end_time = start_time + duration
    return ReadableSpan(
        name=name,
        context=context,
        parent=parent,
        resource=Resource.create({}),
        attributes=attributes,
        kind=kind,
        status=status if status is not None else Status(StatusCode.UNSET),
        start_time=start_time,
        end_time=end_time,
    )


def gen_trace(trace_id, nspans=5, service=None, attributes=None):
    """A root span followed by its children."""
    root_id = trace_id & 0xFFFF or 1
    spans = []
    for i in range(nspans):
        attrs = dict(attributes or {})
        if service is not None:
            attrs["service.name"] = service
        spans.append(
            make_span(
                name="op-%d" % i,
                trace_id=trace_id,
                span_id=root_id + i,
                parent_id=root_id if i else None,
                attributes=attrs,
            )
        )
    return spans


def decode(payload):
    return msgpack.unpackb(payload, raw=False, strict_map_key=False)


def resolve_v05(payload):
    """Decode a v0.5 payload, resolving every string index against the string table."""
    strings, traces = decode(payload)
    resolved = []
    for trace in traces:
        spans = []
        for record in trace:
            (service, name, resource, trace_id, span_id, parent_id, start, duration, error, meta, metrics, span_type) = (
                record
            )
            spans.append(
                {
                    "service": strings[service],
                    "name": strings[name],
                    "resource": strings[resource],
                    "trace_id": trace_id,
                    "span_id": span_id,
                    "parent_id": parent_id,
                    "start": start,
                    "duration": duration,
                    "error": error,
                    "meta": {strings[k]: strings[v] for k, v in meta.items()},
                    "metrics": {strings[k]: v for k, v in metrics.items()},
                    "type": strings[span_type],
                }
            )
        resolved.append(spans)
    return resolved


class DummyClient(HttpClient):
    """Record requests instead of sending them."""

    def __init__(self, result=SpanExportResult.SUCCESS, exc=None):
        self.result = result
        self.exc = exc
        self.requests = []
        self.closed = False

    def send(self, request):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.result

    def close(self):
        self.closed = True


@contextlib.contextmanager
def override_env(env, replace_os_env=False):
    """
    Temporarily override ``os.environ`` with provided values::

        >>> with override_env(dict(DD_SERVICE="my-service")):
            # Your test
    """
    # Copy the full original environment
    original = dict(os.environ)

    # We allow callers to clear out the environment to prevent leaking variables into the test
    if replace_os_env:
        os.environ.clear()

    for k in list(os.environ.keys()):
        if k.startswith(("DD_SERVICE", "DD_TRACE_")):
            del os.environ[k]

    # Update based on the passed in arguments
    os.environ.update(env)
    try:
        yield
    finally:
        # Full clear the environment out and reset back to the original
        os.environ.clear()
        os.environ.update(original)
