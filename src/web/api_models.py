from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class LoopStatsResponse(BaseModel):
    frame_count: int
    inference_failures: int
    read_failures: int
    last_inference_ms: Optional[float]
    fps: float
    last_frame_ts: Optional[float]
    last_error: Optional[str]


class StatusResponse(BaseModel):
    """
    Status panel payload, optimized for frontend polling.
    """
    state: str = Field(..., description="idle|running")
    pump_on: bool = Field(..., description="True if the last requested pump state is on")
    pump_state: str = Field(..., description="on|off|unknown")
    status_text: str
    inference_in_flight: int = 0
    actuator_url: str
    source_id: str
    model_backend: Optional[str] = None
    uptime_seconds: int
    stats: LoopStatsResponse


class ControlResponse(BaseModel):
    ok: bool
    state: str
    status_text: str


class SettingsResponse(BaseModel):
    actuator_base_url: str
    score_threshold: float
    target_class: int


class UpdateSettingsRequest(BaseModel):
    actuator_base_url: str = Field(..., description="Base URL of the pump controller, e.g. http://192.168.1.100")


class ProbeResponse(BaseModel):
    online: bool
    url: str
    status_code: Optional[int] = None
    latency_ms: Optional[float] = None
    error: Optional[str] = None
