"""
Render stage: draw kept detections onto a copy of the frame.

The annotated frame feeds the MJPEG preview on the status page and the
optional OpenCV window in headless mode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from models.config import CameraConfig, DetectionConfig
from models.detection import Detection, NormalizedBox

# BGR
COLOR_TARGET = (0, 0, 255)
COLOR_BANNER = (255, 255, 255)


def to_pixel_rect(box: NormalizedBox, width: float, height: float) -> Tuple[float, float, float, float]:
    """Return (x, y, w, h) of a normalized box on a canvas of width x height."""
    return box.to_pixels(width, height).as_xywh()


def label_origin(x: float, y: float) -> Tuple[int, int]:
    """Label sits 5px above the box, clamped so it stays on screen."""
    return int(x), (int(y - 5) if y > 10 else 10)


@dataclass
class RenderStageConfig:
    """
    Attributes:
        label: Text drawn above each kept box.
        line_width: Rectangle stroke width in pixels.
        mirror: Flip the preview horizontally (user-facing cameras).
    """
    label: str = "Weed"
    line_width: int = 3
    mirror: bool = False


class OverlayRenderer:
    def __init__(self, config: RenderStageConfig):
        self._config = config

    def draw(self, frame: np.ndarray, kept: List[Detection], status_text: Optional[str] = None) -> np.ndarray:
        height, width = frame.shape[:2]
        font = cv2.FONT_HERSHEY_SIMPLEX

        if self._config.mirror:
            # Flip the image first and mirror box x so label text stays readable
            canvas = cv2.flip(frame, 1)
        else:
            canvas = frame.copy()

        for det in kept:
            x, y, w, h = to_pixel_rect(det.box, width, height)
            if self._config.mirror:
                x = width - (x + w)
            cv2.rectangle(
                canvas,
                (int(x), int(y)),
                (int(x + w), int(y + h)),
                COLOR_TARGET,
                self._config.line_width,
            )
            cv2.putText(canvas, self._config.label, label_origin(x, y), font, 0.6, COLOR_TARGET, 2)

        if status_text:
            cv2.putText(canvas, status_text, (10, height - 12), font, 0.6, COLOR_BANNER, 2)

        return canvas


def create_render_stage(detection_cfg: DetectionConfig, camera_cfg: Optional[CameraConfig] = None) -> OverlayRenderer:
    """Factory: build the renderer from the typed `detection` and `camera` config sections."""
    camera_cfg = camera_cfg or CameraConfig()
    return OverlayRenderer(
        RenderStageConfig(
            label=detection_cfg.label,
            mirror=camera_cfg.mirror_preview,
        )
    )
