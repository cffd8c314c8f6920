"""
TensorFlow backend for object detection SavedModels.

Expects the TF Object Detection API serving signature: a uint8 image batch in,
`detection_boxes` / `detection_scores` / `detection_classes` out.
"""

from __future__ import annotations

import os
from typing import Dict, Optional

import cv2
import numpy as np

from .backend import ModelLoadError, RawOutputs, ThreadedBackend

OUTPUT_KEYS = ("detection_boxes", "detection_scores", "detection_classes")


class TensorFlowBackend(ThreadedBackend):
    def __init__(self, model_path: str, class_names: Optional[Dict[int, str]] = None):
        super().__init__(class_names)
        try:
            import tensorflow as tf  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "TensorFlow is not installed. Install with `pip install tensorflow` "
                "or switch model.backend to 'ultralytics'."
            ) from e

        if not os.path.exists(model_path):
            raise ModelLoadError(f"Model path does not exist: {model_path}")

        self._tf = tf
        self._model = tf.saved_model.load(model_path)
        self._fn = self._model.signatures["serving_default"]

    def _predict(self, frame: np.ndarray) -> RawOutputs:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        batch = self._tf.convert_to_tensor(np.expand_dims(rgb, axis=0), dtype=self._tf.uint8)
        outputs = self._fn(batch)

        missing = [k for k in OUTPUT_KEYS if k not in outputs]
        if missing:
            raise RuntimeError(f"Model outputs missing keys: {missing}")

        boxes, scores, classes = (outputs[k].numpy() for k in OUTPUT_KEYS)
        return boxes, scores, classes
