"""
Pipeline stages for the weed sprayer.

Each stage handles a specific part of one loop iteration:
- filter: Target-class / confidence filtering
- render: Overlay annotation
"""

from .filter import DetectionFilter, FilterResult, FilterStageConfig, create_filter_stage
from .render import OverlayRenderer, RenderStageConfig, create_render_stage, to_pixel_rect

__all__ = [
    "DetectionFilter",
    "FilterResult",
    "FilterStageConfig",
    "create_filter_stage",
    "OverlayRenderer",
    "RenderStageConfig",
    "create_render_stage",
    "to_pixel_rect",
]
