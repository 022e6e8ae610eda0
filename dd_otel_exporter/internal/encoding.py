from collections import OrderedDict
from enum import Enum
from typing import TYPE_CHECKING
from typing import Dict
from typing import List
from typing import Sequence
from typing import Tuple
from typing import Type

from ._encoding import EncodingError
from ._encoding import MsgpackEncoderV03
from ._encoding import MsgpackEncoderV05
from ._encoding import StringTable
from ._encoding import StringTableDrainedError
from ._encoding import _TraceEncoderBase
from .logger import get_logger


__all__ = [
    "ApiVersion",
    "EncodingError",
    "MSGPACK_ENCODERS",
    "MsgpackEncoderV03",
    "MsgpackEncoderV05",
    "StringTable",
    "StringTableDrainedError",
    "encode",
    "group_traces",
]


if TYPE_CHECKING:  # pragma: no cover
    from opentelemetry.sdk.trace import ReadableSpan


log = get_logger(__name__)


MSGPACK_ENCODERS = {
    "v0.3": MsgpackEncoderV03,
    "v0.5": MsgpackEncoderV05,
}  # type: Dict[str, Type[_TraceEncoderBase]]


class ApiVersion(Enum):
    """Version of the Datadog agent trace intake API."""

    V03 = "v0.3"
    V05 = "v0.5"

    @classmethod
    def parse(cls, value):
        # type: (str) -> ApiVersion
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if not normalized.startswith("v"):
            normalized = "v" + normalized
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                "unsupported Datadog agent API version %r, expected one of %s"
                % (value, ", ".join(v.value for v in cls))
            )

    @property
    def path(self):
        # type: () -> str
        return "/%s/traces" % self.value

    @property
    def content_type(self):
        # type: () -> str
        return self.encoder.content_type

    @property
    def encoder(self):
        # type: () -> Type[_TraceEncoderBase]
        return MSGPACK_ENCODERS[self.value]


def group_traces(spans):
    # type: (Sequence[ReadableSpan]) -> List[List[ReadableSpan]]
    """Group a flat batch of spans by trace id, keeping the order in which traces and spans were seen."""
    traces = OrderedDict()  # type: OrderedDict[int, List[ReadableSpan]]
    for span in spans:
        traces.setdefault(span.context.trace_id, []).append(span)
    return list(traces.values())


def encode(version, service_name, spans):
    # type: (ApiVersion, str, Sequence[ReadableSpan]) -> Tuple[bytes, str]
    """Encode a batch of spans for the given agent API version.

    Returns the payload and the content type to send it with. Raises
    ``EncodingError`` if the batch cannot be represented in the format.
    """
    traces = group_traces(spans)
    payload = version.encoder().encode_traces(traces, service_name)
    log.debug("encoded %d spans in %d traces with %s (%d bytes)", len(spans), len(traces), version.value, len(payload))
    return payload, version.content_type
