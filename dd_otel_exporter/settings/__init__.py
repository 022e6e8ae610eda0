from ._exporter import ExporterConfig
from ._exporter import ExporterEnvConfig


__all__ = ["ExporterConfig", "ExporterEnvConfig"]
