from enum import Enum
from enum import unique


class StrEnum(str, Enum):
    pass


@unique
class SpanTypes(StrEnum):
    """Standard values of the ``span.type`` attribute, which changes how a span is rendered in the Datadog UI."""

    CACHE = "cache"
    CASSANDRA = "cassandra"
    ELASTICSEARCH = "elasticsearch"
    GRPC = "grpc"
    GRAPHQL = "graphql"
    HTTP = "http"
    MONGODB = "mongodb"
    REDIS = "redis"
    SQL = "sql"
    TEMPLATE = "template"
    TEST = "test"
    WEB = "web"
    WORKER = "worker"
