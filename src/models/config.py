"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    mirror_preview: bool = False
    buffer_size: int = 1
    max_retries: int = 3
    max_reconnects: int = 3
    reconnect_interval: int = 20

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            swap_rb=d.get("swap_rb", False),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
            mirror_preview=d.get("mirror_preview", False),
            buffer_size=d.get("buffer_size", 1),
            max_retries=d.get("max_retries", 3),
            max_reconnects=d.get("max_reconnects", 3),
            reconnect_interval=d.get("reconnect_interval", 20),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
            "mirror_preview": self.mirror_preview,
            "buffer_size": self.buffer_size,
            "max_retries": self.max_retries,
            "max_reconnects": self.max_reconnects,
            "reconnect_interval": self.reconnect_interval,
        }


@dataclass
class ModelConfig:
    """Detection model artifact configuration."""
    backend: str = "tensorflow"
    path: str = "model"
    class_names: Optional[Dict[int, str]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        names = d.get("class_names")
        return cls(
            backend=d.get("backend", "tensorflow"),
            path=d.get("path", "model"),
            class_names={int(k): str(v) for k, v in names.items()} if names else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "backend": self.backend,
            "path": self.path,
        }
        if self.class_names is not None:
            d["class_names"] = self.class_names
        return d


@dataclass
class DetectionConfig:
    """Target filter configuration."""
    score_threshold: float = 0.6
    target_class: int = 1
    label: str = "Weed"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            score_threshold=float(d.get("score_threshold", 0.6)),
            target_class=int(d.get("target_class", 1)),
            label=d.get("label", "Weed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score_threshold": self.score_threshold,
            "target_class": self.target_class,
            "label": self.label,
        }


@dataclass
class ActuatorConfig:
    """Pump actuator endpoint configuration."""
    base_url: str = "http://192.168.1.100"
    timeout_s: float = 5.0
    probe_timeout_s: float = 3.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ActuatorConfig":
        return cls(
            base_url=d.get("base_url", "http://192.168.1.100"),
            timeout_s=float(d.get("timeout_s", 5.0)),
            probe_timeout_s=float(d.get("probe_timeout_s", 3.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "timeout_s": self.timeout_s,
            "probe_timeout_s": self.probe_timeout_s,
        }


@dataclass
class LoopConfig:
    """Frame loop pacing."""
    frame_interval_s: float = 0.0
    read_retry_delay_s: float = 0.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            frame_interval_s=float(d.get("frame_interval_s", 0.0)),
            read_retry_delay_s=float(d.get("read_retry_delay_s", 0.5)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_interval_s": self.frame_interval_s,
            "read_retry_delay_s": self.read_retry_delay_s,
        }


@dataclass
class WebConfig:
    """Status page / API server configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000
    preview_fps: int = 10

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
            preview_fps=d.get("preview_fps", 10),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "host": self.host,
            "port": self.port,
            "preview_fps": self.preview_fps,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    actuator: ActuatorConfig = field(default_factory=ActuatorConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/weed_sprayer.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            actuator=ActuatorConfig.from_dict(d.get("actuator", {}) or {}),
            loop=LoopConfig.from_dict(d.get("loop", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/weed_sprayer.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "detection": self.detection.to_dict(),
            "actuator": self.actuator.to_dict(),
            "loop": self.loop.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
