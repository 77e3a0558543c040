# Ensure project root is on sys.path so 'kra_client' and 'tests.fixtures' are
# importable when running pytest without an editable install.
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.resolve()
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_error_aggregator():
    """Clear aggregated error counts after each test."""
    yield
    from kra_client.logging_config import error_aggregator

    error_aggregator.reset()
