"""
Per-label alert cooldown table.
"""

from __future__ import annotations

from typing import Dict, Optional


class CooldownTable:
    """
    Maps label -> timestamp of the last emitted alert for that label.

    Entries are written only when an alert is actually emitted, never for
    detections that were merely seen.
    """

    def __init__(self):
        self._last_alerts: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._last_alerts)

    def last_alert(self, label: str) -> Optional[float]:
        return self._last_alerts.get(label)

    def record(self, label: str, timestamp: float) -> None:
        self._last_alerts[label] = timestamp

    def prune(self, now: float, max_age_s: float) -> int:
        """Drop entries older than max_age_s; returns the number removed."""
        stale = [label for label, ts in self._last_alerts.items() if now - ts > max_age_s]
        for label in stale:
            del self._last_alerts[label]
        return len(stale)

    def clear(self) -> None:
        self._last_alerts.clear()

    def snapshot(self) -> Dict[str, float]:
        """Copy of the table for diagnostics."""
        return dict(self._last_alerts)
