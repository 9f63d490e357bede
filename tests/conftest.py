import io
import json
import sys
from pathlib import Path

import pytest

# Let tests import main.py from the project root.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from floodguard import logger


@pytest.fixture
def log_records(monkeypatch):
    """Capture JSON log output; call the returned function to get parsed records."""
    stream = io.StringIO()
    monkeypatch.setattr(logger, "LOG_STREAM", stream)

    def records():
        return [json.loads(line) for line in stream.getvalue().splitlines()]

    return records
