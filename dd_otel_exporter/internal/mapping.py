from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Tuple

from opentelemetry.trace import StatusCode

from ..constants import ERROR_MSG
from ..constants import INSTRUMENTATION_NAME
from ..constants import SERVICE_KEY
from ..constants import SPAN_TYPE_KEY
from ..constants import _MAX_UINT64


if TYPE_CHECKING:  # pragma: no cover
    from opentelemetry.sdk.trace import ReadableSpan
    from opentelemetry.util.types import AttributeValue


@dataclass(frozen=True)
class MappedSpan:
    """A span as the Datadog agent sees it."""

    trace_id: int
    span_id: int
    parent_id: int
    service: str
    name: str
    resource: str
    span_type: Optional[str]
    start: int
    duration: int
    error: int
    meta: Dict[str, str] = field(default_factory=dict)
    metrics: Dict[str, float] = field(default_factory=dict)


def trace_id_64bits(trace_id):
    # type: (int) -> int
    """Keep the low-order 64 bits of a 128-bit trace id.

    The agent intake only has room for 64-bit trace ids, so two traces whose ids
    only differ in their high-order bits end up with the same Datadog trace id.
    """
    return trace_id & _MAX_UINT64


def _render(value):
    # type: (AttributeValue) -> str
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_render(v) for v in value) + "]"
    return str(value)


def split_attributes(attributes):
    # type: (Optional[Mapping[str, AttributeValue]]) -> Tuple[Dict[str, str], Dict[str, float]]
    """Partition span attributes into Datadog ``meta`` (strings) and ``metrics`` (numbers).

    Integers and floats become metrics, coerced to ``float``. Everything else,
    booleans included, is rendered as a string and becomes meta. Each key ends up
    in exactly one of the two maps.
    """
    meta = {}  # type: Dict[str, str]
    metrics = {}  # type: Dict[str, float]
    if not attributes:
        return meta, metrics

    for key, value in attributes.items():
        # bool is a subclass of int
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            metrics[key] = float(value)
        else:
            meta[key] = _render(value)
    return meta, metrics


def map_span(span, service_name):
    # type: (ReadableSpan, str) -> MappedSpan
    """Derive the Datadog representation of a finished OpenTelemetry span.

    The span name becomes the resource and the name is always the name of the
    exporter, following Datadog's convention of a single primary operation name
    per service.
    """
    attributes = span.attributes or {}
    meta, metrics = split_attributes(attributes)

    service = attributes.get(SERVICE_KEY)
    if not isinstance(service, str) or not service:
        service = service_name

    span_type = attributes.get(SPAN_TYPE_KEY)
    if span_type is not None:
        span_type = _render(span_type)

    start = span.start_time or 0
    duration = 0
    if span.end_time is not None:
        duration = max(0, span.end_time - start)

    error = 0
    status = span.status
    if status is not None:
        if status.status_code is StatusCode.ERROR:
            error = 1
        if status.description:
            meta[ERROR_MSG] = status.description
            metrics.pop(ERROR_MSG, None)

    parent = span.parent
    return MappedSpan(
        trace_id=trace_id_64bits(span.context.trace_id),
        span_id=span.context.span_id,
        parent_id=parent.span_id if parent is not None else 0,
        service=service,
        name=INSTRUMENTATION_NAME,
        resource=span.name,
        span_type=span_type,
        start=start,
        duration=duration,
        error=error,
        meta=meta,
        metrics=metrics,
    )
