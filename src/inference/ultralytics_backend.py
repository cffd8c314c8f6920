"""
Ultralytics YOLO backend.

Uses Ultralytics if installed. Boxes are taken from the normalized `xyxyn`
output and reordered into the y_min, x_min, y_max, x_max convention.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from .backend import RawOutputs, ThreadedBackend


def _to_numpy(value) -> np.ndarray:
    return value.cpu().numpy() if hasattr(value, "cpu") else np.asarray(value)


class UltralyticsBackend(ThreadedBackend):
    def __init__(self, model_path: str, class_names: Optional[Dict[int, str]] = None):
        try:
            from ultralytics import YOLO  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install ultralytics` "
                "or switch model.backend to 'tensorflow'."
            ) from e

        self._model = YOLO(model_path)
        names = dict(getattr(self._model, "names", None) or {})
        names.update(class_names or {})
        super().__init__(names)

    def _predict(self, frame: np.ndarray) -> RawOutputs:
        results = self._model.predict(source=frame, verbose=False)
        if not results or getattr(results[0], "boxes", None) is None:
            return np.zeros((0, 4)), np.zeros(0), np.zeros(0)

        boxes = results[0].boxes
        xyxyn = _to_numpy(boxes.xyxyn).reshape(-1, 4)
        # x1, y1, x2, y2 -> y1, x1, y2, x2
        yxyx = xyxyn[:, [1, 0, 3, 2]]
        return yxyx, _to_numpy(boxes.conf), _to_numpy(boxes.cls)
