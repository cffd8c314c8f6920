from __future__ import annotations

import os
import platform
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from models.config import Config


@dataclass
class HealthService:
    cfg: Dict[str, Any]

    def get_health_summary(self) -> Dict[str, Any]:
        typed = Config.from_dict(self.cfg)
        return {
            "timestamp": time.time(),
            "platform": platform.platform(),
            "python": platform.python_version(),
            "cwd": os.getcwd(),
            "model_path": typed.model.path,
            "log_path": typed.log_path,
            "cpu_temp_c": self.read_cpu_temp_c(),
        }

    @staticmethod
    def read_cpu_temp_c() -> Optional[float]:
        """
        Best-effort CPU temperature read; returns None if unavailable.
        """
        candidates = [
            "/sys/class/thermal/thermal_zone0/temp",
            "/sys/class/hwmon/hwmon0/temp1_input",
        ]
        for path in candidates:
            try:
                if os.path.exists(path):
                    with open(path, "r") as f:
                        raw = f.read().strip()
                        return float(raw) / 1000.0 if len(raw) > 3 else float(raw)
            except (OSError, ValueError):
                continue
        return None
