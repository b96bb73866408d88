"""
crew-planner — package root

File: src/crew_planner/__init__.py

Purpose
- Critical-path scheduling and peak crew demand measurement for interdependent tasks.

Import boundary rules
- Must not have side effects at import time (no config loading, no logging init).
- Heavy adapters (CLI, config, persistence) are imported from their own subpackages.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
