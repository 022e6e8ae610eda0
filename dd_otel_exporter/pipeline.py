"""Install a Datadog export pipeline for the OpenTelemetry SDK.

Usage example::

    from dd_otel_exporter import new_pipeline

    tracer, uninstall = new_pipeline(service_name="my_app", version="v0.5").install()

    with tracer.start_as_current_span("GET /users"):
        ...

    uninstall()
"""
from typing import TYPE_CHECKING
from typing import Optional
from typing import Tuple

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.export import SimpleSpanProcessor

from .constants import INSTRUMENTATION_NAME
from .exporter import DatadogExporter
from .internal.logger import get_logger
from .settings import ExporterConfig
from .version import __version__


if TYPE_CHECKING:  # pragma: no cover
    from opentelemetry.sdk.trace import Tracer

    from .internal.http import HttpClient


log = get_logger(__name__)


class Uninstall(object):
    """Shut down an installed pipeline, flushing the spans still buffered.

    Can be called directly or used as a context manager.
    """

    def __init__(self, provider):
        # type: (TracerProvider) -> None
        self.provider = provider
        self._done = False

    def uninstall(self):
        # type: () -> None
        if self._done:
            return
        self._done = True
        self.provider.shutdown()
        log.debug("Datadog export pipeline uninstalled")

    __call__ = uninstall

    def __enter__(self):
        # type: () -> Uninstall
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.uninstall()


class DatadogPipeline(object):
    """A configured, not yet installed, Datadog export pipeline."""

    def __init__(self, config):
        # type: (ExporterConfig) -> None
        self.config = config

    def __repr__(self):
        return "{0}(config={1!r})".format(self.__class__.__name__, self.config)

    def build_exporter(self, client=None):
        # type: (Optional[HttpClient]) -> DatadogExporter
        return DatadogExporter(config=self.config, client=client)

    def build_provider(self, client=None, batch=True):
        # type: (Optional[HttpClient], bool) -> TracerProvider
        kwargs = {}
        if self.config.sampler is not None:
            kwargs["sampler"] = self.config.sampler
        if self.config.id_generator is not None:
            kwargs["id_generator"] = self.config.id_generator
        provider = TracerProvider(**kwargs)

        exporter = self.build_exporter(client)
        processor = BatchSpanProcessor(exporter) if batch else SimpleSpanProcessor(exporter)
        provider.add_span_processor(processor)
        return provider

    def install(self, client=None, batch=True, set_global=True):
        # type: (Optional[HttpClient], bool, bool) -> Tuple[Tracer, Uninstall]
        """Build the tracer provider and return a tracer bound to it.

        :param client: HTTP client used to reach the agent, defaults to ``AgentHTTPClient``
        :param batch: export spans in batches from a background thread instead of one by one on span end
        :param set_global: register the provider as the global OpenTelemetry tracer provider
        """
        provider = self.build_provider(client=client, batch=batch)
        if set_global:
            trace.set_tracer_provider(provider)
        tracer = provider.get_tracer(INSTRUMENTATION_NAME, __version__)
        log.debug("Datadog export pipeline installed: %r", self)
        return tracer, Uninstall(provider)


def new_pipeline(
    service_name=None,  # type: Optional[str]
    agent_endpoint=None,  # type: Optional[str]
    version=None,
    timeout=None,  # type: Optional[float]
    sampler=None,
    id_generator=None,
):
    # type: (...) -> DatadogPipeline
    """Create a Datadog export pipeline.

    Unset options are read from the environment, see :class:`ExporterConfig`.
    """
    config = ExporterConfig.from_env(
        service_name=service_name,
        agent_endpoint=agent_endpoint,
        version=version,
        timeout=timeout,
        sampler=sampler,
        id_generator=id_generator,
    )
    return DatadogPipeline(config)
