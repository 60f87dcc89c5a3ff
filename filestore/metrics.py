"""
Save/load outcome counters for one store.

Counts I/O outcomes only; keys and values are never recorded.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class StoreMetrics:
    """Outcome counters of a FileStore's persistence calls."""

    saves: int = 0
    save_failures: int = 0
    loads: int = 0
    load_failures: int = 0
    rejections: int = 0
    entries: int = 0  # entry count after the last successful save or load

    def saved(self, entries: int) -> None:
        self.saves += 1
        self.entries = entries

    def save_failed(self) -> None:
        self.save_failures += 1

    def loaded(self, entries: int) -> None:
        self.loads += 1
        self.entries = entries

    def load_failed(self, rejected: bool = False) -> None:
        """Count a failed load; rejected marks an allow-list refusal."""
        self.load_failures += 1
        if rejected:
            self.rejections += 1
