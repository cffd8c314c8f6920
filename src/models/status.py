"""
Loop state, runtime statistics and connectivity models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import time


class LoopState(str, Enum):
    """Detection loop lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"


class StatusText:
    """Human-readable status lines shown on the status page."""
    LOADING_MODEL = "Loading weed detection model..."
    READY = "Model loaded. Press start to begin detection."
    STARTING = "Starting camera..."
    TARGET_PRESENT = "Weed detected! Pump ON"
    TARGET_ABSENT = "No weed detected"
    STOPPED = "Detection stopped. Pump OFF"


@dataclass
class LoopStats:
    """
    Runtime statistics for the detection loop.

    Attributes:
        frame_count: Frames that completed a full iteration.
        inference_failures: Inference calls that raised.
        read_failures: Frame reads that returned nothing.
        last_inference_ms: Duration of the most recent inference call.
        fps: Exponentially smoothed iterations per second.
        last_frame_ts: Unix timestamp of the last completed iteration.
        last_error: Text of the most recent error, if any.
    """
    frame_count: int = 0
    inference_failures: int = 0
    read_failures: int = 0
    last_inference_ms: Optional[float] = None
    fps: float = 0.0
    last_frame_ts: Optional[float] = None
    last_error: Optional[str] = None
    started_at: float = field(default_factory=time.time)

    def record_frame(self, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        if self.last_frame_ts is not None:
            dt = now - self.last_frame_ts
            if dt > 0:
                instant = 1.0 / dt
                self.fps = instant if self.fps == 0.0 else 0.9 * self.fps + 0.1 * instant
        self.last_frame_ts = now
        self.frame_count += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_count": self.frame_count,
            "inference_failures": self.inference_failures,
            "read_failures": self.read_failures,
            "last_inference_ms": self.last_inference_ms,
            "fps": round(self.fps, 2),
            "last_frame_ts": self.last_frame_ts,
            "last_error": self.last_error,
        }


@dataclass(frozen=True)
class ConnectivityResult:
    """
    Outcome of a reachability check against the actuator.

    Attributes:
        online: True if the endpoint answered with a 2xx status.
        url: The URL that was probed.
        status_code: HTTP status code, None if no response was received.
        latency_ms: Round-trip time, None if no response was received.
        error: Error description when offline.
    """
    online: bool
    url: str
    status_code: Optional[int] = None
    latency_ms: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "online": self.online,
            "url": self.url,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }
