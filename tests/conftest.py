from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Import pbiscan from the local src tree even when an older build is installed.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))


@pytest.fixture
def clean_env(monkeypatch):
    """Drop every PBISCAN_* variable inherited from the shell."""
    for name in list(os.environ):
        if name.startswith("PBISCAN_"):
            monkeypatch.delenv(name)
    return monkeypatch
