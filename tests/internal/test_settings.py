from opentelemetry.sdk.trace.sampling import ALWAYS_ON
import pytest

from dd_otel_exporter.internal.encoding import ApiVersion
from dd_otel_exporter.settings import ExporterConfig
from dd_otel_exporter.settings import ExporterEnvConfig
from tests.utils import override_env


def test_defaults():
    config = ExporterConfig()
    assert config.service_name == "OpenTelemetry"
    assert config.agent_endpoint == "http://127.0.0.1:8126"
    assert config.version is ApiVersion.V05
    assert config.timeout == 2.0
    assert config.sampler is None
    assert config.id_generator is None
    assert config.request_url == "http://127.0.0.1:8126/v0.5/traces"


def test_version_string_is_parsed():
    assert ExporterConfig(version="v0.3").version is ApiVersion.V03
    assert ExporterConfig(version="0.5").version is ApiVersion.V05


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(service_name=""),
        dict(agent_endpoint="localhost:8126"),
        dict(agent_endpoint="ftp://localhost"),
        dict(version="v0.4"),
        dict(timeout=0),
        dict(timeout=-1.0),
    ],
)
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        ExporterConfig(**kwargs)


@pytest.mark.parametrize(
    "endpoint,expected",
    [
        ("http://localhost:8126", "http://localhost:8126/v0.5/traces"),
        ("http://localhost:8126/", "http://localhost:8126/v0.5/traces"),
        ("https://agent.example.com/base", "https://agent.example.com/base/v0.5/traces"),
    ],
)
def test_request_url(endpoint, expected):
    assert ExporterConfig(agent_endpoint=endpoint).request_url == expected


def test_from_env_defaults():
    with override_env({}):
        config = ExporterConfig.from_env()
    assert config == ExporterConfig()


def test_from_env():
    env = dict(
        DD_SERVICE="env-service",
        DD_TRACE_AGENT_URL="unix:///var/run/datadog/apm.socket",
        DD_TRACE_API_VERSION="v0.3",
        DD_TRACE_AGENT_TIMEOUT_SECONDS="0.5",
    )
    with override_env(env):
        config = ExporterConfig.from_env()
    assert config.service_name == "env-service"
    assert config.agent_endpoint == "unix:///var/run/datadog/apm.socket"
    assert config.version is ApiVersion.V03
    assert config.timeout == 0.5


def test_from_env_arguments_take_precedence():
    with override_env(dict(DD_SERVICE="env-service", DD_TRACE_API_VERSION="v0.3")):
        config = ExporterConfig.from_env(service_name="my-service", version=ApiVersion.V05, sampler=ALWAYS_ON)
    assert config.service_name == "my-service"
    assert config.version is ApiVersion.V05
    assert config.sampler is ALWAYS_ON


def test_env_config():
    with override_env(dict(DD_TRACE_API_VERSION="0.3")):
        env = ExporterEnvConfig()
    assert env.version is ApiVersion.V03
    assert env.service_name == "OpenTelemetry"

    config = ExporterConfig.from_env(env=env)
    assert config.version is ApiVersion.V03


@pytest.mark.parametrize(
    "env",
    [dict(DD_TRACE_API_VERSION="v0.4"), dict(DD_TRACE_AGENT_TIMEOUT_SECONDS="0")],
)
def test_env_config_invalid(env):
    with override_env(env):
        with pytest.raises(ValueError):
            ExporterEnvConfig()


def test_config_is_frozen():
    config = ExporterConfig()
    with pytest.raises(AttributeError):
        config.service_name = "other"
