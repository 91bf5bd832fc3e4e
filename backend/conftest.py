"""Root conftest: test environment and structlog routed through stdlib so caplog sees events."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import _redact_tokens, _serialize_enums

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# No ProcessorFormatter handler is installed here, so records keep the event
# dict as `msg` and tests read `record.msg["event"]`.
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _serialize_enums,
        _redact_tokens,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Game and player ids bound while handling one message must not leak into the next test."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
