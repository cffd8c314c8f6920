"""
Detection models for object detection results.

Model backends emit boxes in normalized [y_min, x_min, y_max, x_max] order
(the TF object detection convention). Everything downstream of the model
boundary works with these typed objects instead of raw output arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))


@dataclass(frozen=True)
class NormalizedBox:
    """
    A bounding box relative to frame dimensions, each edge in [0, 1].

    Attributes:
        y_min: Top edge as a fraction of frame height.
        x_min: Left edge as a fraction of frame width.
        y_max: Bottom edge as a fraction of frame height.
        x_max: Right edge as a fraction of frame width.
    """
    y_min: float
    x_min: float
    y_max: float
    x_max: float

    def to_pixels(self, width: float, height: float) -> BoundingBox:
        """Scale to pixel space for a canvas of the given size."""
        return BoundingBox(
            x1=self.x_min * width,
            y1=self.y_min * height,
            x2=self.x_max * width,
            y2=self.y_max * height,
        )

    @classmethod
    def from_xyxyn(cls, x1: float, y1: float, x2: float, y2: float) -> "NormalizedBox":
        """Create from normalized (x1, y1, x2, y2) as emitted by YOLO models."""
        return cls(y_min=y1, x_min=x1, y_max=y2, x_max=x2)


@dataclass(frozen=True)
class Detection:
    """
    A single candidate object found in one frame.

    Attributes:
        box: Normalized bounding box.
        score: Detection confidence (0-1).
        class_id: Class identifier from the model.
        class_name: Optional human-readable class name.
    """
    box: NormalizedBox
    score: float
    class_id: int
    class_name: Optional[str] = None


def _squeeze_batch(arr: np.ndarray, ndim: int) -> np.ndarray:
    """Drop a leading batch dimension of size 1 if present."""
    while arr.ndim > ndim and arr.shape[0] == 1:
        arr = arr[0]
    return arr


def detections_from_outputs(
    boxes: Sequence,
    scores: Sequence,
    classes: Sequence,
    class_names: Optional[Dict[int, str]] = None,
) -> List[Detection]:
    """
    Adapter: Convert the three index-aligned model outputs into Detections.

    Args:
        boxes: Array of shape (N, 4) or (1, N, 4), normalized
            [y_min, x_min, y_max, x_max] rows.
        scores: Array of shape (N,) or (1, N).
        classes: Array of shape (N,) or (1, N). Float class ids are truncated.
        class_names: Optional mapping of class id to display name.

    Raises:
        ValueError: If the arrays are not index-aligned.
    """
    boxes_arr = _squeeze_batch(np.asarray(boxes, dtype=float), 2)
    scores_arr = _squeeze_batch(np.asarray(scores, dtype=float), 1)
    classes_arr = _squeeze_batch(np.asarray(classes), 1)

    if boxes_arr.size == 0:
        return []
    if boxes_arr.ndim != 2 or boxes_arr.shape[1] != 4:
        raise ValueError(f"boxes must have shape (N, 4), got {boxes_arr.shape}")
    if not (len(boxes_arr) == len(scores_arr) == len(classes_arr)):
        raise ValueError(
            f"model outputs are not aligned: boxes={len(boxes_arr)}, "
            f"scores={len(scores_arr)}, classes={len(classes_arr)}"
        )

    names = class_names or {}
    out: List[Detection] = []
    for (y_min, x_min, y_max, x_max), score, cls in zip(boxes_arr, scores_arr, classes_arr):
        class_id = int(cls)
        out.append(
            Detection(
                box=NormalizedBox(
                    y_min=float(y_min),
                    x_min=float(x_min),
                    y_max=float(y_max),
                    x_max=float(x_max),
                ),
                score=float(score),
                class_id=class_id,
                class_name=names.get(class_id),
            )
        )
    return out
