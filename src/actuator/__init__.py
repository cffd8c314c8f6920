"""
Remote pump actuator: debounced on/off notifications and reachability checks.
"""

from .notifier import PumpNotifier
from .probe import probe_actuator

__all__ = ["PumpNotifier", "probe_actuator"]
