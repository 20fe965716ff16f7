# conftest.py
# Ensure the repository root is on sys.path so the tests can import the
# 'jan_lookup' package without installing it, and the shared fakes module
# next to this file.

import sys
from pathlib import Path

import pytest

# conftest is at: tests/conftest.py
ROOT = Path(__file__).resolve().parents[1]
for path in (ROOT, Path(__file__).resolve().parent):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from fakes import fast_policy  # noqa: E402


@pytest.fixture
def policy():
    return fast_policy()
