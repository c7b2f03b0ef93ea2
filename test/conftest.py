import logging
import sys
from pathlib import Path

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def reset_intelbridge_logger():
    """Drop handlers installed by setup_structured_logging between tests."""
    yield
    logger = logging.getLogger("intelbridge")
    for handler in list(logger.handlers):
        if getattr(handler, "_intelbridge", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
