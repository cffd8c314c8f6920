"""
Pipeline module for the weed sprayer.

The pipeline orchestrates one detection cycle per frame:
- Frame acquisition from observation sources
- Model inference
- Target filtering and overlay rendering (stages)
- Pump actuation
"""

from .engine import FrameLoopController, IterationResult, PipelineConfig, create_controller_from_config
from .stages.filter import DetectionFilter, FilterResult, FilterStageConfig, create_filter_stage
from .stages.render import OverlayRenderer, RenderStageConfig, create_render_stage

__all__ = [
    "FrameLoopController",
    "IterationResult",
    "PipelineConfig",
    "create_controller_from_config",
    "DetectionFilter",
    "FilterResult",
    "FilterStageConfig",
    "create_filter_stage",
    "OverlayRenderer",
    "RenderStageConfig",
    "create_render_stage",
]
