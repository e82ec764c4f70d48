"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

import pytest


@pytest.fixture(autouse=True)
def _isolate_log_env(monkeypatch):
    """Keep structured loggers from writing files during tests."""
    monkeypatch.delenv("ROWA_LOG_DIR", raising=False)
    monkeypatch.delenv("ROWA_CONFIG_FILE", raising=False)
