from .backend import DetectionModel, ModelLoadError, ThreadedBackend, create_model_from_config

__all__ = [
    "DetectionModel",
    "ModelLoadError",
    "ThreadedBackend",
    "create_model_from_config",
]
