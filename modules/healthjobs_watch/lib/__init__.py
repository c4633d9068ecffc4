# modules/healthjobs_watch/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Selectors, Settings
from .differ import diff
from .engine import run_once
from .models import DiffResult, JobRecord

__all__ = [
    "ConfigError",
    "DiffResult",
    "JobRecord",
    "Selectors",
    "Settings",
    "diff",
    "run_once",
]
