"""Root conftest: test environment plus stdlib-routed structlog so caplog sees events."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import redact_secrets

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# Same processor chain as production minus the renderer; secret redaction stays on
# so tests exercise it on every logged event.
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _isolate_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
