"""Pytest configuration for GridVault bot tests."""

import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep loguru file sinks and the JSONL event history out of the source tree
os.environ.setdefault("GRIDVAULT_LOG_DIR", str(Path(tempfile.gettempdir()) / "gridvault-test-logs"))

pytest_plugins = ["pytest_asyncio"]
