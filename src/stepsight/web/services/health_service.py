from __future__ import annotations

import os
import platform
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class HealthService:
    log_path: Optional[str] = None
    start_time: Optional[float] = None

    def get_health_summary(self) -> Dict[str, Any]:
        now = time.time()
        return {
            "timestamp": now,
            "platform": platform.platform(),
            "python": platform.python_version(),
            "cwd": os.getcwd(),
            "log_path": self.log_path,
            "uptime_seconds": int(now - self.start_time) if self.start_time else None,
        }
