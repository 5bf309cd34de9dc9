"""Add backend to path so tests can import modules directly (from engine.pricing import ...)."""
import json
import os
import sys
from pathlib import Path

import pytest

_backend_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def sample_payload() -> dict:
    return json.loads((FIXTURES_DIR / "sample_agreement.json").read_text(encoding="utf-8"))
