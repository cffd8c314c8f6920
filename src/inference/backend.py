"""
Inference backend interface.

The detection loop depends only on DetectionModel: one awaitable call per
frame returning typed Detections with normalized boxes. Concrete backends run
their blocking framework call in a worker thread and adapt the raw
(boxes, scores, classes) outputs at this boundary.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from models.config import ModelConfig
from models.detection import Detection, detections_from_outputs

# boxes (N x 4 normalized y_min, x_min, y_max, x_max), scores (N), classes (N)
RawOutputs = Tuple[Sequence, Sequence, Sequence]


class ModelLoadError(RuntimeError):
    """Raised when a model artifact cannot be loaded."""


class DetectionModel(Protocol):
    async def infer(self, frame: np.ndarray) -> List[Detection]:
        ...


class ThreadedBackend(ABC):
    """
    Base for backends wrapping a blocking inference framework.

    Subclasses implement `_predict` returning the three index-aligned output
    arrays; `infer` runs it off the event loop and adapts the result.
    """

    def __init__(self, class_names: Optional[Dict[int, str]] = None):
        self.class_names = class_names or {}
        self.last_latency_ms: Optional[float] = None

    @abstractmethod
    def _predict(self, frame: np.ndarray) -> RawOutputs:
        ...

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """Blocking single-frame inference."""
        start = time.perf_counter()
        boxes, scores, classes = self._predict(frame)
        self.last_latency_ms = (time.perf_counter() - start) * 1000.0
        return detections_from_outputs(boxes, scores, classes, class_names=self.class_names)

    async def infer(self, frame: np.ndarray) -> List[Detection]:
        return await asyncio.to_thread(self.detect, frame)


def create_model_from_config(model_cfg: Dict[str, Any]) -> ThreadedBackend:
    """
    Factory: load the model described by the `model` config section.

    Raises:
        ModelLoadError: If the backend is unknown, its library is missing,
            or the artifact fails to load.
    """
    typed = ModelConfig.from_dict(model_cfg)
    backend, path, class_names = typed.backend, typed.path, typed.class_names

    logging.info(f"Loading detection model: backend={backend}, path={path}")
    try:
        if backend == "tensorflow":
            from .tf_backend import TensorFlowBackend
            return TensorFlowBackend(path, class_names=class_names)
        if backend == "ultralytics":
            from .ultralytics_backend import UltralyticsBackend
            return UltralyticsBackend(path, class_names=class_names)
    except ModelLoadError:
        raise
    except Exception as e:
        raise ModelLoadError(f"Failed to load {backend} model from {path}: {e}") from e

    raise ModelLoadError(f"Unknown model backend: {backend}")
