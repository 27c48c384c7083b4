"""
Non-fatal build diagnostics.

Warnings are collected from every worker thread while the build runs and
reported once, grouped by message, when the build finishes.
"""

import logging
import threading
from typing import Dict, List, Optional


class Diagnostics:
    """Thread-safe collector for build warnings."""

    def __init__(self):
        self._lock = threading.Lock()
        self._warnings: Dict[str, List[str]] = {}

    def warn(self, message: str, path: Optional[str] = None) -> None:
        with self._lock:
            paths = self._warnings.setdefault(message, [])
            if path and path not in paths:
                paths.append(path)

    @property
    def warnings(self) -> List[str]:
        """Flat list of warnings, one entry per (message, path) pair."""
        with self._lock:
            result = []
            for message, paths in self._warnings.items():
                if not paths:
                    result.append(message)
                for path in paths:
                    result.append(f"{path}: {message}")
            return result

    def __len__(self):
        with self._lock:
            return len(self._warnings)

    def report(self, logger: logging.Logger, max_paths: int = 5) -> None:
        """Log every collected warning, folding repeated messages."""
        with self._lock:
            items = list(self._warnings.items())

        for message, paths in items:
            if not paths:
                logger.warning(message)
            elif len(paths) == 1:
                logger.warning(f"{paths[0]}: {message}")
            else:
                shown = ', '.join(paths[:max_paths])
                if len(paths) > max_paths:
                    shown += ', ...'
                logger.warning(f"{message} ({len(paths)} files: {shown})")
