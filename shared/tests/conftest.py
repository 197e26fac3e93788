"""Shared pytest configuration for shared-module tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to sys.path so `from shared.xxx import ...` works.
_PROJECT_ROOT = str(Path(__file__).resolve().parent.parent.parent)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)
