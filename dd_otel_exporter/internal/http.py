import abc
from dataclasses import dataclass
from dataclasses import field
import http.client as httplib
import socket
import threading
from typing import Any
from typing import Dict
from typing import Optional
from typing import Union
from urllib import parse

from opentelemetry.sdk.trace.export import SpanExportResult

from ..constants import DEFAULT_TIMEOUT
from .logger import get_logger
from .utils.time import StopWatch


log = get_logger(__name__)


class HTTPConnectionMixin:
    """
    Mixin for HTTP(S) connections inserting a base path in front of requested URLs.
    """

    _base_path: str = "/"

    def putrequest(self, method: str, url: str, skip_host: bool = False, skip_accept_encoding: bool = False) -> None:
        url = parse.urljoin(self._base_path.rstrip("/") + "/", url.lstrip("/"))
        return super().putrequest(  # type: ignore[misc]
            method, url, skip_host=skip_host, skip_accept_encoding=skip_accept_encoding
        )

    @classmethod
    def with_base_path(cls, *args, **kwargs):
        base_path = kwargs.pop("base_path", None)
        obj = cls(*args, **kwargs)
        obj._base_path = base_path or "/"
        return obj


class HTTPConnection(HTTPConnectionMixin, httplib.HTTPConnection):
    """
    httplib.HTTPConnection wrapper to add a base path to requested URLs
    """


class HTTPSConnection(HTTPConnectionMixin, httplib.HTTPSConnection):
    """
    httplib.HTTPSConnection wrapper to add a base path to requested URLs
    """


class UDSHTTPConnection(HTTPConnectionMixin, httplib.HTTPConnection):
    """An HTTP connection established over a Unix Domain Socket."""

    # The hostname and port arguments are kept as they are used in the `Host` header.
    def __init__(self, path: str, *args: Any, **kwargs: Any) -> None:
        super(UDSHTTPConnection, self).__init__(*args, **kwargs)
        self.path = path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        if self.timeout is not None:
            sock.settimeout(self.timeout)
        sock.connect(self.path)
        self.sock = sock


ConnectionType = Union[HTTPSConnection, HTTPConnection, UDSHTTPConnection]


def verify_url(url):
    # type: (str) -> parse.ParseResult
    """Verify that a URL can be used to communicate with the Datadog Agent.

    Returns a parse.ParseResult.
    Raises a ``ValueError`` if the URL is not supported by the Agent.
    """
    parsed = parse.urlparse(url)
    schemes = ("http", "https", "unix")
    if parsed.scheme not in schemes:
        raise ValueError(
            "Unsupported protocol '%s' in intake URL '%s'. Must be one of: %s"
            % (parsed.scheme, url, ", ".join(schemes))
        )
    elif parsed.scheme in ["http", "https"] and not parsed.hostname:
        raise ValueError("Invalid hostname in intake URL '%s'" % url)
    elif parsed.scheme == "unix" and not parsed.path:
        raise ValueError("Invalid file path in intake URL '%s'" % url)

    return parsed


def get_connection(url, timeout=DEFAULT_TIMEOUT):
    # type: (str, float) -> ConnectionType
    """Return an HTTP connection to the given URL."""
    parsed = verify_url(url)
    hostname = parsed.hostname or ""
    path = parsed.path or "/"

    if parsed.scheme == "https":
        return HTTPSConnection.with_base_path(hostname, parsed.port, base_path=path, timeout=timeout)
    elif parsed.scheme == "http":
        return HTTPConnection.with_base_path(hostname, parsed.port, base_path=path, timeout=timeout)
    elif parsed.scheme == "unix":
        # the socket path is not part of the requested URL
        return UDSHTTPConnection(path, "localhost", timeout=timeout)

    raise ValueError("Unsupported protocol '%s'" % parsed.scheme)


@dataclass(frozen=True)
class Request:
    """An HTTP request to the agent: ``path`` is appended to the base ``url``."""

    method: str
    url: str
    path: str
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def full_url(self):
        # type: () -> str
        return self.url.rstrip("/") + self.path


class HttpClient(metaclass=abc.ABCMeta):
    """Send encoded payloads to the agent.

    Implementations must map every failure, transport errors included, to
    ``SpanExportResult.FAILURE`` rather than raising.
    """

    @abc.abstractmethod
    def send(self, request):
        # type: (Request) -> SpanExportResult
        pass

    def close(self):
        # type: () -> None
        pass


class AgentHTTPClient(HttpClient):
    """Default client, built on ``http.client`` connections.

    A single connection is kept open and reused across requests to the same
    agent URL. It is reset whenever a request fails.
    """

    def __init__(self, timeout=DEFAULT_TIMEOUT, reuse_connections=True):
        # type: (float, bool) -> None
        self._timeout = timeout
        self._reuse_connections = reuse_connections
        self._conn = None  # type: Optional[ConnectionType]
        self._conn_url = None  # type: Optional[str]
        # The batch span processor exports from its worker thread while
        # force_flush() can export from any other thread.
        self._conn_lck = threading.RLock()

    def __repr__(self):
        return "{0}(timeout={1!r}, reuse_connections={2!r})".format(
            self.__class__.__name__, self._timeout, self._reuse_connections
        )

    def _reset_connection(self):
        # type: () -> None
        with self._conn_lck:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._conn_url = None

    def _get_connection(self, url):
        # type: (str) -> ConnectionType
        if self._conn is None or self._conn_url != url:
            self._reset_connection()
            log.debug("creating new agent connection to %s with timeout %.2f", url, self._timeout)
            self._conn = get_connection(url, self._timeout)
            self._conn_url = url
        return self._conn

    def send(self, request):
        # type: (Request) -> SpanExportResult
        sw = StopWatch().start()
        with self._conn_lck:
            try:
                conn = self._get_connection(request.url)
                conn.request(request.method, request.path, request.body, request.headers)
                resp = conn.getresponse()
                # the body is drained so the connection can be reused
                resp.read()
            except Exception:
                self._reset_connection()
                log.error("failed to send traces to Datadog Agent at %s", request.full_url, exc_info=True)
                return SpanExportResult.FAILURE
            finally:
                if not self._reuse_connections:
                    self._reset_connection()

        log.debug(
            "sent %d bytes in %.5fs to %s, got %s %s",
            len(request.body),
            sw.elapsed(),
            request.full_url,
            resp.status,
            resp.reason,
        )
        if 200 <= resp.status < 300:
            return SpanExportResult.SUCCESS

        log.error(
            "failed to send traces to Datadog Agent at %s: HTTP error status %s, reason %s",
            request.full_url,
            resp.status,
            resp.reason,
        )
        return SpanExportResult.FAILURE

    def close(self):
        # type: () -> None
        self._reset_connection()
