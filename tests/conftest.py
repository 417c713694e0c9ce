"""Pytest configuration.

Prepends `src/` to `sys.path` so the tests import the source tree rather than
an installed wheel, and provides a console fixture that records output.
"""

import io
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))

import pytest
from rich.console import Console


class RecordingConsole:
    """A Rich console writing to memory."""

    def __init__(self, width: int = 120) -> None:
        self.buffer = io.StringIO()
        self.console = Console(file=self.buffer, width=width, color_system=None, force_terminal=False)

    @property
    def text(self) -> str:
        return self.buffer.getvalue()

    @property
    def lines(self) -> list[str]:
        return self.text.splitlines()


@pytest.fixture
def out():
    return RecordingConsole()


@pytest.fixture
def err():
    return RecordingConsole()
