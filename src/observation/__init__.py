"""
Observation layer for pluggable video/image sources.

This layer abstracts where frames come from (camera, stream, video file)
away from the detection loop. Each source implements the ObservationSource
interface and returns FrameData objects.
"""

from .base import CameraUnavailableError, ObservationConfig, ObservationSource
from .opencv_source import OpenCVSource, OpenCVSourceConfig, create_source_from_config

__all__ = [
    "CameraUnavailableError",
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
