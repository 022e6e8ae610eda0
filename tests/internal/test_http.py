import http.server
import threading

import mock
from opentelemetry.sdk.trace.export import SpanExportResult
import pytest

from dd_otel_exporter.internal.http import AgentHTTPClient
from dd_otel_exporter.internal.http import HTTPConnection
from dd_otel_exporter.internal.http import HTTPSConnection
from dd_otel_exporter.internal.http import Request
from dd_otel_exporter.internal.http import UDSHTTPConnection
from dd_otel_exporter.internal.http import get_connection
from dd_otel_exporter.internal.http import verify_url


class _AgentHandler(http.server.BaseHTTPRequestHandler):
    status = 200
    received = []

    def do_POST(self):
        body = self.rfile.read(int(self.headers["Content-Length"]))
        self.received.append((self.path, dict(self.headers), body))
        self.send_response(self.status)
        self.send_header("Content-Length", "2")
        self.end_headers()
        self.wfile.write(b"OK")

    def log_message(self, format, *args):
        pass


@pytest.fixture
def agent():
    handler = type("Handler", (_AgentHandler,), {"received": [], "status": 200})
    server = http.server.HTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever)
    thread.daemon = True
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join()


def _request(server, base_path=""):
    return Request(
        method="POST",
        url="http://127.0.0.1:%d%s" % (server.server_port, base_path),
        path="/v0.5/traces",
        body=b"\x92\x90\x90",
        headers={"Content-Type": "application/msgpack"},
    )


def test_send_success(agent):
    client = AgentHTTPClient(timeout=1)
    assert client.send(_request(agent)) == SpanExportResult.SUCCESS
    assert client.send(_request(agent)) == SpanExportResult.SUCCESS
    client.close()

    assert len(agent.RequestHandlerClass.received) == 2
    path, headers, body = agent.RequestHandlerClass.received[0]
    assert path == "/v0.5/traces"
    assert headers["Content-Type"] == "application/msgpack"
    assert body == b"\x92\x90\x90"


def test_send_with_base_path(agent):
    client = AgentHTTPClient(timeout=1, reuse_connections=False)
    assert client.send(_request(agent, base_path="/agent")) == SpanExportResult.SUCCESS
    path, _, _ = agent.RequestHandlerClass.received[0]
    assert path == "/agent/v0.5/traces"
    assert client._conn is None


@pytest.mark.parametrize("status", [400, 404, 500, 503])
def test_send_http_error(agent, status):
    agent.RequestHandlerClass.status = status
    client = AgentHTTPClient(timeout=1)
    with mock.patch("dd_otel_exporter.internal.http.log") as log:
        assert client.send(_request(agent)) == SpanExportResult.FAILURE
    log.error.assert_called_once_with(
        "failed to send traces to Datadog Agent at %s: HTTP error status %s, reason %s",
        "http://127.0.0.1:%d/v0.5/traces" % agent.server_port,
        status,
        mock.ANY,
    )
    client.close()


def test_send_connection_error():
    client = AgentHTTPClient(timeout=0.5)
    request = Request(method="POST", url="http://127.0.0.1:1", path="/v0.5/traces", body=b"")
    with mock.patch("dd_otel_exporter.internal.http.log"):
        assert client.send(request) == SpanExportResult.FAILURE
    # the connection is reset after a failure
    assert client._conn is None


def test_send_invalid_url():
    client = AgentHTTPClient()
    request = Request(method="POST", url="ftp://127.0.0.1", path="/v0.5/traces", body=b"")
    with mock.patch("dd_otel_exporter.internal.http.log"):
        assert client.send(request) == SpanExportResult.FAILURE


@pytest.mark.parametrize(
    "url",
    ["http://localhost:8126", "https://intake.example.com", "unix:///var/run/datadog/apm.socket"],
)
def test_verify_url(url):
    assert verify_url(url).scheme == url.partition(":")[0]


@pytest.mark.parametrize("url", ["ftp://localhost", "localhost:8126", "http://", "unix://"])
def test_verify_url_invalid(url):
    with pytest.raises(ValueError):
        verify_url(url)


def test_get_connection():
    conn = get_connection("http://localhost:8126/base", timeout=3)
    assert isinstance(conn, HTTPConnection)
    assert conn.host == "localhost"
    assert conn.port == 8126
    assert conn.timeout == 3
    assert conn._base_path == "/base"

    conn = get_connection("https://localhost")
    assert isinstance(conn, HTTPSConnection)
    assert conn._base_path == "/"

    conn = get_connection("unix:///var/run/datadog/apm.socket")
    assert isinstance(conn, UDSHTTPConnection)
    assert conn.path == "/var/run/datadog/apm.socket"


def test_request_full_url():
    request = Request(method="POST", url="http://localhost:8126/", path="/v0.3/traces", body=b"")
    assert request.full_url == "http://localhost:8126/v0.3/traces"
    assert request.headers == {}
