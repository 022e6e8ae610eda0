"""msgpack encoders for the Datadog agent trace intake.

Two formats are supported:

- v0.3 sends every span as a map of field names to literal values.
- v0.5 sends a string table followed by the traces, every span being a fixed
  12 elements array in which strings are replaced by their index in the table::

      [
          [string0, string1, ...],
          [
              [
                  [service, name, resource, trace_id, span_id, parent_id,
                   start, duration, error, {meta}, {metrics}, type],
                  ...
              ],
              ...
          ],
      ]

Numbers are always packed with their fixed width msgpack representation.
"""
import struct
from typing import TYPE_CHECKING
from typing import Dict
from typing import Iterator
from typing import List

import msgpack

from .mapping import map_span


if TYPE_CHECKING:  # pragma: no cover
    from opentelemetry.sdk.trace import ReadableSpan

    from .mapping import MappedSpan

    Trace = List[ReadableSpan]


class EncodingError(Exception):
    """A batch of spans cannot be represented in the target format."""


class StringTableDrainedError(EncodingError):
    """The string table was used after being drained."""


class StringTable(object):
    """Assign sequential indices, starting at 0, to the strings of a payload.

    A table is meant to be used for a single payload: strings are interned while
    the spans are being packed and the table is drained once, when the payload
    is assembled.
    """

    __slots__ = ("_index", "_strings", "_drained")

    def __init__(self):
        # type: () -> None
        self._index = {}  # type: Dict[str, int]
        self._strings = []  # type: List[str]
        self._drained = False

    def intern(self, value):
        # type: (str) -> int
        if self._drained:
            raise StringTableDrainedError("cannot intern %r, the string table was already drained" % value)
        try:
            return self._index[value]
        except KeyError:
            index = self._index[value] = len(self._strings)
            self._strings.append(value)
            return index

    def drain(self):
        # type: () -> List[str]
        if self._drained:
            raise StringTableDrainedError("the string table was already drained")
        self._drained = True
        strings, self._strings = self._strings, []
        self._index = {}
        return strings

    def __len__(self):
        # type: () -> int
        return len(self._strings)

    def __contains__(self, value):
        # type: (object) -> bool
        return value in self._index

    def __iter__(self):
        # type: () -> Iterator[str]
        return iter(self._strings)

    def __repr__(self):
        return "{0}(size={1}, drained={2})".format(self.__class__.__name__, len(self), self._drained)


_UINT32 = struct.Struct(">BI")
_UINT64 = struct.Struct(">BQ")
_INT32 = struct.Struct(">Bi")
_INT64 = struct.Struct(">Bq")
_FLOAT64 = struct.Struct(">Bd")


class _Packer(object):
    """Append msgpack primitives to a byte buffer.

    Strings and container headers are delegated to ``msgpack.Packer``, numbers
    are written with their fixed width type tag so every field of a given kind
    has the same size on the wire.
    """

    __slots__ = ("_buffer", "_packer")

    def __init__(self):
        # type: () -> None
        self._buffer = bytearray()
        self._packer = msgpack.Packer(use_bin_type=True, unicode_errors="strict")

    def pack_array_header(self, size):
        # type: (int) -> None
        self._buffer += self._packer.pack_array_header(size)

    def pack_map_header(self, size):
        # type: (int) -> None
        self._buffer += self._packer.pack_map_header(size)

    def pack_str(self, value):
        # type: (str) -> None
        if not isinstance(value, str):
            raise TypeError("expected a string, got %r" % (value,))
        self._buffer += self._packer.pack(value)

    def pack_uint32(self, value):
        # type: (int) -> None
        self._buffer += _UINT32.pack(0xCE, value)

    def pack_uint64(self, value):
        # type: (int) -> None
        self._buffer += _UINT64.pack(0xCF, value)

    def pack_int32(self, value):
        # type: (int) -> None
        self._buffer += _INT32.pack(0xD2, value)

    def pack_int64(self, value):
        # type: (int) -> None
        self._buffer += _INT64.pack(0xD3, value)

    def pack_float64(self, value):
        # type: (float) -> None
        self._buffer += _FLOAT64.pack(0xCB, value)

    def getvalue(self):
        # type: () -> bytes
        return bytes(self._buffer)

    def __len__(self):
        # type: () -> int
        return len(self._buffer)


class _TraceEncoderBase(object):
    """Encode lists of traces, each trace being a list of finished spans."""

    content_type = "application/msgpack"

    def encode_traces(self, traces, service_name):
        # type: (List[Trace], str) -> bytes
        """Encode all the traces in a single payload.

        The payload is built in full before being returned: if any field cannot
        be encoded an ``EncodingError`` is raised and nothing is returned.
        """
        try:
            return self._encode_traces(traces, service_name)
        except EncodingError:
            raise
        except (ValueError, OverflowError, TypeError, struct.error) as e:
            raise EncodingError("unable to encode %d traces: %s" % (len(traces), e)) from e

    def _encode_traces(self, traces, service_name):
        # type: (List[Trace], str) -> bytes
        raise NotImplementedError()


class MsgpackEncoderV03(_TraceEncoderBase):
    def _encode_traces(self, traces, service_name):
        # type: (List[Trace], str) -> bytes
        packer = _Packer()
        packer.pack_array_header(len(traces))
        for trace in traces:
            packer.pack_array_header(len(trace))
            for span in trace:
                self.pack_span(packer, map_span(span, service_name))
        return packer.getvalue()

    @staticmethod
    def pack_span(packer, span):
        # type: (_Packer, MappedSpan) -> None
        packer.pack_map_header(12 if span.span_type is not None else 11)

        packer.pack_str("service")
        packer.pack_str(span.service)
        packer.pack_str("name")
        packer.pack_str(span.name)
        packer.pack_str("resource")
        packer.pack_str(span.resource)
        if span.span_type is not None:
            packer.pack_str("type")
            packer.pack_str(span.span_type)
        packer.pack_str("trace_id")
        packer.pack_uint64(span.trace_id)
        packer.pack_str("span_id")
        packer.pack_uint64(span.span_id)
        packer.pack_str("parent_id")
        packer.pack_uint64(span.parent_id)
        packer.pack_str("start")
        packer.pack_int64(span.start)
        packer.pack_str("duration")
        packer.pack_int64(span.duration)
        packer.pack_str("error")
        packer.pack_int32(span.error)

        packer.pack_str("meta")
        packer.pack_map_header(len(span.meta))
        for key, value in sorted(span.meta.items()):
            packer.pack_str(key)
            packer.pack_str(value)

        packer.pack_str("metrics")
        packer.pack_map_header(len(span.metrics))
        for key, metric in sorted(span.metrics.items()):
            packer.pack_str(key)
            packer.pack_float64(metric)


class MsgpackEncoderV05(_TraceEncoderBase):
    def _encode_traces(self, traces, service_name):
        # type: (List[Trace], str) -> bytes
        table = StringTable()

        # Spans are packed into their own buffer as the string table must be
        # complete before it can be written at the head of the payload.
        records = _Packer()
        records.pack_array_header(len(traces))
        for trace in traces:
            records.pack_array_header(len(trace))
            for span in trace:
                self.pack_span(records, table, map_span(span, service_name))

        strings = table.drain()
        payload = _Packer()
        payload.pack_array_header(2)
        payload.pack_array_header(len(strings))
        for string in strings:
            payload.pack_str(string)
        return payload.getvalue() + records.getvalue()

    @staticmethod
    def pack_span(packer, table, span):
        # type: (_Packer, StringTable, MappedSpan) -> None
        packer.pack_array_header(12)
        packer.pack_uint32(table.intern(span.service))
        packer.pack_uint32(table.intern(span.name))
        packer.pack_uint32(table.intern(span.resource))
        packer.pack_uint64(span.trace_id)
        packer.pack_uint64(span.span_id)
        packer.pack_uint64(span.parent_id)
        packer.pack_int64(span.start)
        packer.pack_int64(span.duration)
        packer.pack_int32(span.error)

        packer.pack_map_header(len(span.meta))
        for key, value in sorted(span.meta.items()):
            packer.pack_uint32(table.intern(key))
            packer.pack_uint32(table.intern(value))

        packer.pack_map_header(len(span.metrics))
        for key, metric in sorted(span.metrics.items()):
            packer.pack_uint32(table.intern(key))
            packer.pack_float64(metric)

        packer.pack_uint32(table.intern(span.span_type if span.span_type is not None else ""))
