"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Test modules import both ``src`` packages and ``tests`` helpers.
for _path in (_PROJECT_ROOT / "src", _PROJECT_ROOT):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))
