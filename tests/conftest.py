"""
Pytest configuration and shared fixtures.
"""

import asyncio
import os
import sys
import time
from typing import List, Optional

import httpx
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import Detection, NormalizedBox  # noqa: E402
from models.frame import FrameData  # noqa: E402
from observation.base import CameraUnavailableError, ObservationConfig, ObservationSource  # noqa: E402


BASE_URL = "http://pump.test"


def make_detection(score: float = 0.9, class_id: int = 1, box=(0.1, 0.2, 0.5, 0.6)) -> Detection:
    return Detection(box=NormalizedBox(*box), score=score, class_id=class_id)


class StubSource(ObservationSource):
    """Camera stub: yields a fixed number of frames, then None."""

    def __init__(self, num_frames: int = 3, fail_open: bool = False, shape=(48, 64, 3)):
        super().__init__(ObservationConfig(source_id="stub-camera"))
        self._num_frames = num_frames
        self._fail_open = fail_open
        self._shape = shape
        self.open_calls = 0
        self.close_calls = 0

    def open(self) -> None:
        self.open_calls += 1
        if self._fail_open:
            raise CameraUnavailableError("no camera device")
        self._is_open = True

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._frame_index >= self._num_frames:
            return None
        self._frame_index += 1
        return FrameData.from_numpy(
            np.zeros(self._shape, dtype=np.uint8),
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        self.close_calls += 1
        self._is_open = False


class StubModel:
    """
    Detection model stub.

    Returns `outputs[i]` for the i-th call (the last entry repeats), raises
    when an entry is an Exception, and tracks concurrent calls.
    """

    def __init__(self, outputs: Optional[List] = None, delay: float = 0.0):
        self.outputs = outputs if outputs is not None else [[]]
        self.delay = delay
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.release: Optional[asyncio.Event] = None

    async def infer(self, frame):
        index = min(self.calls, len(self.outputs) - 1)
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.release is not None:
                await self.release.wait()
            await asyncio.sleep(self.delay)
            out = self.outputs[index]
            if isinstance(out, Exception):
                raise out
            return list(out)
        finally:
            self.in_flight -= 1


class PumpRecorder:
    """httpx MockTransport handler recording request paths and full URLs."""

    def __init__(self, status_code: int = 200, fail: bool = False):
        self.paths: List[str] = []
        self.urls: List[str] = []
        self.status_code = status_code
        self.fail = fail

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            raise httpx.ConnectError("connection refused", request=request)
        self.paths.append(request.url.path)
        self.urls.append(str(request.url))
        return httpx.Response(self.status_code, text="ok")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.005) -> None:
    """Poll `predicate` on the event loop until true or fail the test."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def pump():
    return PumpRecorder()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  backend: "tensorflow"
  path: "model"

detection:
  score_threshold: 0.6
  target_class: 1

actuator:
  base_url: "http://192.168.1.100"

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [640, 480],
            "fps": 30,
        },
        "model": {
            "backend": "tensorflow",
            "path": "model",
        },
        "detection": {
            "score_threshold": 0.6,
            "target_class": 1,
            "label": "Weed",
        },
        "actuator": {
            "base_url": BASE_URL,
            "timeout_s": 1.0,
            "probe_timeout_s": 1.0,
        },
        "loop": {
            "frame_interval_s": 0.0,
            "read_retry_delay_s": 0.01,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
