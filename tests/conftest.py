"""Pytest configuration for test environment setup.

- Forces ``DISABLE_FILE_LOGS=1`` to avoid writing log files during tests.
- Ensures the project root is available on ``sys.path`` for imports.
- Clears inliner environment variables so a developer's shell or ``.env``
  cannot change test outcomes.
"""

import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("DISABLE_FILE_LOGS", "1")  # Avoid creating log files during tests

# Ensure project root is on sys.path
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

_INLINER_ENV = (
    "API_INLINER_MODE",
    "API_INLINER_REQUEST_TIMEOUT",
    "API_INLINER_RETRY_COUNT",
    "API_INLINER_MAX_CONCURRENT_REQUESTS",
    "API_INLINER_REQUESTS_PER_MINUTE",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_inliner_env(monkeypatch, tmp_path):
    """Start every test from a development-mode environment without a .env."""
    import api_inliner.config as cfg

    for name in _INLINER_ENV:
        # setenv first so monkeypatch restores the original state afterwards,
        # even when a test loads a .env file that sets the variable.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setattr(cfg, "PROJECT_ROOT", tmp_path)
