from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Optional
from typing import Union

from envier import En

from ..constants import DEFAULT_AGENT_ENDPOINT
from ..constants import DEFAULT_SERVICE_NAME
from ..constants import DEFAULT_TIMEOUT
from ..internal.encoding import ApiVersion
from ..internal.http import verify_url


if TYPE_CHECKING:  # pragma: no cover
    from opentelemetry.sdk.trace.id_generator import IdGenerator
    from opentelemetry.sdk.trace.sampling import Sampler


def _validate_timeout(t: float) -> None:
    if t <= 0:
        raise ValueError("timeout must be a positive number of seconds")


class ExporterEnvConfig(En):
    """Defaults of the exporter, read from the environment."""

    __prefix__ = "dd"

    service_name = En.v(
        str,
        "service",
        default=DEFAULT_SERVICE_NAME,
        help_type="String",
        help="Service name under which traces are grouped in Datadog",
    )

    agent_endpoint = En.v(
        str,
        "trace_agent_url",
        default=DEFAULT_AGENT_ENDPOINT,
        help_type="String",
        help="URL of the Datadog Agent trace intake (http, https or unix scheme)",
    )

    version = En.v(
        ApiVersion,
        "trace_api_version",
        parser=ApiVersion.parse,
        default=ApiVersion.V05,
        help_type="String",
        help="Version of the Datadog Agent trace API, v0.3 or v0.5",
    )

    timeout = En.v(
        float,
        "trace_agent_timeout_seconds",
        default=DEFAULT_TIMEOUT,
        validator=_validate_timeout,
        help_type="Float",
        help="Timeout in seconds of the requests sent to the Datadog Agent",
    )


@dataclass(frozen=True)
class ExporterConfig:
    """Validated configuration of a Datadog export pipeline.

    Unset values default to the environment (``DD_SERVICE``,
    ``DD_TRACE_AGENT_URL``, ``DD_TRACE_API_VERSION`` and
    ``DD_TRACE_AGENT_TIMEOUT_SECONDS``) and then to the built-in defaults.
    ``sampler`` and ``id_generator`` are handed to the OpenTelemetry SDK
    ``TracerProvider`` unchanged.
    """

    service_name: str = DEFAULT_SERVICE_NAME
    agent_endpoint: str = DEFAULT_AGENT_ENDPOINT
    version: ApiVersion = ApiVersion.V05
    timeout: float = DEFAULT_TIMEOUT
    sampler: Optional["Sampler"] = None
    id_generator: Optional["IdGenerator"] = None

    def __post_init__(self):
        if not isinstance(self.service_name, str) or not self.service_name:
            raise ValueError("service_name must be a non empty string")
        verify_url(self.agent_endpoint)
        if not isinstance(self.version, ApiVersion):
            # frozen dataclass, bypass __setattr__ to store the parsed value
            object.__setattr__(self, "version", ApiVersion.parse(self.version))
        _validate_timeout(self.timeout)

    @classmethod
    def from_env(
        cls,
        service_name=None,  # type: Optional[str]
        agent_endpoint=None,  # type: Optional[str]
        version=None,  # type: Optional[Union[ApiVersion, str]]
        timeout=None,  # type: Optional[float]
        sampler=None,  # type: Optional[Sampler]
        id_generator=None,  # type: Optional[IdGenerator]
        env=None,  # type: Optional[ExporterEnvConfig]
    ):
        # type: (...) -> ExporterConfig
        """Build a configuration, falling back to the environment for unset values."""
        env = env if env is not None else ExporterEnvConfig()
        return cls(
            service_name=service_name if service_name is not None else env.service_name,
            agent_endpoint=agent_endpoint if agent_endpoint is not None else env.agent_endpoint,
            version=version if version is not None else env.version,
            timeout=timeout if timeout is not None else env.timeout,
            sampler=sampler,
            id_generator=id_generator,
        )

    @property
    def request_url(self):
        # type: () -> str
        """Full URL of the trace intake for the configured API version."""
        return self.agent_endpoint.rstrip("/") + self.version.path
