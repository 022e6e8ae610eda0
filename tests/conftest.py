import pytest

from dd_otel_exporter.internal import logger


@pytest.fixture(autouse=True)
def reset_logging_buckets():
    # records from one test must not rate limit the same call site in the next
    logger.reset_buckets()
    yield
    logger.reset_buckets()
