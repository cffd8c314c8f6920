"""
Typed models for the weed sprayer application.

Raw model outputs, YAML dicts and camera buffers are converted into these
types at the edges so the loop, filter and web layers never see raw arrays.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox, NormalizedBox, detections_from_outputs
from .status import LoopState, LoopStats, ConnectivityResult, StatusText
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DetectionConfig,
    ActuatorConfig,
    LoopConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    "NormalizedBox",
    "detections_from_outputs",
    # Status
    "LoopState",
    "LoopStats",
    "ConnectivityResult",
    "StatusText",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DetectionConfig",
    "ActuatorConfig",
    "LoopConfig",
    "WebConfig",
]
