"""Pytest configuration shared by the test suite.

- Ensures the project root is available on ``sys.path`` for imports.
- Provides ``sink``, a stand-in logger that records what the build reports.
"""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


class RecordingLog:
    """Collect log calls as ``(level, message)`` pairs."""

    def __init__(self):
        self.records = []

    def _record(self, level, msg, *args):
        self.records.append((level, msg % args if args else msg))

    def debug(self, msg, *args):
        self._record("debug", msg, *args)

    def info(self, msg, *args):
        self._record("info", msg, *args)

    def warning(self, msg, *args):
        self._record("warning", msg, *args)

    def error(self, msg, *args):
        self._record("error", msg, *args)

    def messages(self, level):
        return [message for lvl, message in self.records if lvl == level]


@pytest.fixture
def sink():
    return RecordingLog()
