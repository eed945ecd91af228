from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest


# Ensure src/ is importable for all tests (CI and local)
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
for p in (ROOT, SRC):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from event_emitter import EventEmitter  # noqa: E402


@pytest.fixture
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture
def warnings_seen() -> List[str]:
    return []


@pytest.fixture
def guarded_emitter(warnings_seen: List[str]) -> EventEmitter:
    return EventEmitter(warning_handler=warnings_seen.append)


def pytest_collection_modifyitems(config, items):
    """Default all tests to 'unit' unless explicitly marked otherwise."""
    for item in items:
        marks = {m.name for m in item.iter_markers()}
        if not ("integ" in marks or "unit" in marks):
            item.add_marker(pytest.mark.unit)
