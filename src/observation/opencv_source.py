"""
OpenCV-based observation source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- IP camera streams (device_id as URL string)
- Video files (device_id as file path)
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse, urlunparse

import cv2
import numpy as np

from models.config import CameraConfig
from models.frame import FrameData
from .base import CameraUnavailableError, ObservationConfig, ObservationSource


def sanitize_url(device_id: Union[int, str]) -> str:
    """Strip credentials from a stream URL before logging it."""
    if not isinstance(device_id, str) or "://" not in device_id:
        return str(device_id)
    parsed = urlparse(device_id)
    if parsed.username is None and parsed.password is None:
        return device_id
    host = parsed.hostname or ""
    if parsed.port:
        host = f"{host}:{parsed.port}"
    return urlunparse(parsed._replace(netloc=f"***@{host}"))


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        device_id: Camera index (int), stream URL (str), or file path (str).
        buffer_size: OpenCV capture buffer size (reduces latency for live feeds).
        max_retries: Attempts to open the device before giving up.
        max_reconnects: Consecutive read failures that each trigger a reopen.
        reconnect_interval: Past max_reconnects, reopen on every Nth failure.
        swap_rb: Swap R/B channels (fixes RGB vs BGR issues).
        rotate: Rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Flip frame horizontally.
        flip_vertical: Flip frame vertically.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    max_reconnects: int = 3
    reconnect_interval: int = 20
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the camera config dict.

        Args:
            camera_cfg: Camera configuration dict (from config.yaml).
            source_id: Identifier for this source.
        """
        cam = CameraConfig.from_dict(camera_cfg)
        return cls(
            source_id=source_id,
            resolution=tuple(cam.resolution) if cam.resolution else None,
            fps=cam.fps,
            device_id=cam.device_id,
            buffer_size=cam.buffer_size,
            max_retries=cam.max_retries,
            max_reconnects=cam.max_reconnects,
            reconnect_interval=cam.reconnect_interval,
            swap_rb=cam.swap_rb,
            rotate=cam.rotate,
            flip_horizontal=cam.flip_horizontal,
            flip_vertical=cam.flip_vertical,
        )


class OpenCVSource(ObservationSource):
    """
    Wraps cv2.VideoCapture to provide frames as FrameData objects.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(640, 480))
        with OpenCVSource(config) as source:
            frame_data = source.read()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._consecutive_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        """Check if this is a video file."""
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        """Open the video source."""
        if self._is_open:
            return

        self._initialize()
        self._is_open = True
        self._frame_index = 0
        self._consecutive_failures = 0

        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={sanitize_url(self.device_id)}, resolution={self._opencv_config.resolution}"
        )

    def _initialize(self, attempts: Optional[int] = None) -> None:
        """Open the capture device, retrying with backoff."""
        attempts = max(1, attempts or self._opencv_config.max_retries)
        for attempt in range(attempts):
            if attempt > 0:
                wait_time = min(2 ** attempt, 10)
                logging.info(f"Retrying camera open (attempt {attempt + 1}/{attempts}) after {wait_time}s")
                time.sleep(wait_time)

            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            logging.warning(f"Failed to open device {sanitize_url(self.device_id)}")
        else:
            raise CameraUnavailableError(
                f"Camera {sanitize_url(self.device_id)} could not be opened after {attempts} attempts "
                "(no device or permission denied)"
            )

        # Capture properties only apply to local cameras
        if isinstance(self.device_id, int) and self._opencv_config.resolution:
            w, h = self._opencv_config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._opencv_config.fps:
                self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._opencv_config.buffer_size)

            logging.info(
                f"Camera actual settings - Resolution: "
                f"({self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)}x{self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)}), "
                f"FPS: {self._cap.get(cv2.CAP_PROP_FPS)}"
            )

    def read(self) -> Optional[FrameData]:
        """
        Read the next frame from the source.

        Live sources are reopened after a failed read: on each of the first
        `max_reconnects` consecutive failures, then every `reconnect_interval`
        failures so an unplugged camera is picked up again once it returns.
        """
        if not self._is_open:
            return None

        frame = self._grab()
        if frame is None:
            self._consecutive_failures += 1

            # For files, end of video is expected
            if self.is_file:
                logging.info("End of video file reached")
                return None

            if not self._should_reconnect():
                if self._consecutive_failures == self._opencv_config.max_reconnects + 1:
                    logging.error(
                        f"Too many consecutive read failures, retrying every "
                        f"{self._opencv_config.reconnect_interval} reads"
                    )
                return None

            logging.warning(
                f"Failed to read frame (failures: {self._consecutive_failures}), reinitializing..."
            )
            try:
                self._reconnect()
            except CameraUnavailableError:
                logging.error("Reinitialization failed")
                return None
            frame = self._grab()
            if frame is None:
                return None

        self._consecutive_failures = 0
        frame = self._apply_transforms(frame)
        self._frame_index += 1

        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _grab(self) -> Optional[np.ndarray]:
        if self._cap is None or not self._cap.isOpened():
            return None
        ret, frame = self._cap.read()
        return frame if ret else None

    def _should_reconnect(self) -> bool:
        cfg = self._opencv_config
        n = self._consecutive_failures
        return n <= cfg.max_reconnects or (cfg.reconnect_interval > 0 and n % cfg.reconnect_interval == 0)

    def _reconnect(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._initialize(attempts=1)

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Apply configured image transforms (rotate, flip, swap_rb)."""
        cfg = self._opencv_config

        if cfg.rotate == 90:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        elif cfg.rotate == 180:
            frame = cv2.rotate(frame, cv2.ROTATE_180)
        elif cfg.rotate == 270:
            frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)

        if cfg.flip_horizontal or cfg.flip_vertical:
            if cfg.flip_horizontal and cfg.flip_vertical:
                flip_code = -1
            elif cfg.flip_horizontal:
                flip_code = 1
            else:
                flip_code = 0
            frame = cv2.flip(frame, flip_code)

        if cfg.swap_rb:
            frame = frame[..., ::-1].copy()

        return frame

    def close(self) -> None:
        """Close the video source and release resources."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
        self._is_open = False


def create_source_from_config(camera_cfg: Dict[str, Any], source_id: str = "camera") -> ObservationSource:
    """Factory: build the camera source described by the `camera` config section."""
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg, source_id=source_id))
