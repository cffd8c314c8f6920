"""
Smoke tests for typed models and adapters.
"""

import pytest
import numpy as np

from models.frame import FrameData
from models.detection import BoundingBox, Detection, NormalizedBox, detections_from_outputs
from models.status import ConnectivityResult, LoopState, LoopStats
from models.config import Config, ActuatorConfig, CameraConfig, DetectionConfig, ModelConfig


class TestBoundingBox:
    def test_properties(self):
        bbox = BoundingBox(x1=100, y1=100, x2=200, y2=150)
        assert bbox.width == 100
        assert bbox.height == 50
        assert bbox.as_xywh() == (100, 100, 100, 50)

    def test_as_int_tuple(self):
        bbox = BoundingBox(x1=10.5, y1=20.5, x2=30.5, y2=40.5)
        assert bbox.as_int_tuple() == (10, 20, 30, 40)


class TestNormalizedBox:
    def test_to_pixels(self):
        box = NormalizedBox(y_min=0.1, x_min=0.2, y_max=0.5, x_max=0.6)
        px = box.to_pixels(640, 480)
        assert px.x1 == pytest.approx(128)
        assert px.y1 == pytest.approx(48)
        assert px.width == pytest.approx(256)
        assert px.height == pytest.approx(192)

    def test_from_xyxyn_reorders(self):
        box = NormalizedBox.from_xyxyn(0.2, 0.1, 0.6, 0.5)
        assert box == NormalizedBox(y_min=0.1, x_min=0.2, y_max=0.5, x_max=0.6)


class TestDetectionsFromOutputs:
    def test_batched_outputs(self):
        boxes = np.array([[[0.1, 0.2, 0.5, 0.6], [0.0, 0.0, 1.0, 1.0]]])
        scores = np.array([[0.9, 0.3]])
        classes = np.array([[1.0, 2.0]])

        dets = detections_from_outputs(boxes, scores, classes)

        assert len(dets) == 2
        assert dets[0].box == NormalizedBox(0.1, 0.2, 0.5, 0.6)
        assert dets[0].score == pytest.approx(0.9)
        assert dets[0].class_id == 1
        assert isinstance(dets[1].class_id, int)

    def test_unbatched_lists(self):
        dets = detections_from_outputs([[0.1, 0.2, 0.5, 0.6]], [0.7], [1])
        assert len(dets) == 1
        assert dets[0].class_id == 1

    def test_class_names(self):
        dets = detections_from_outputs([[0, 0, 1, 1]], [0.7], [1], class_names={1: "weed"})
        assert dets[0].class_name == "weed"

    def test_empty(self):
        assert detections_from_outputs(np.zeros((1, 0, 4)), np.zeros((1, 0)), np.zeros((1, 0))) == []
        assert detections_from_outputs([], [], []) == []

    def test_misaligned_raises(self):
        with pytest.raises(ValueError):
            detections_from_outputs([[0, 0, 1, 1], [0, 0, 1, 1]], [0.9], [1, 1])

    def test_bad_box_shape_raises(self):
        with pytest.raises(ValueError):
            detections_from_outputs([[0, 0, 1]], [0.9], [1])


class TestFrameData:
    def test_from_numpy(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        fd = FrameData.from_numpy(frame, frame_index=3, source="cam")
        assert fd.width == 640
        assert fd.height == 480
        assert fd.frame_index == 3
        assert fd.source == "cam"
        assert fd.timestamp > 0


class TestLoopStats:
    def test_record_frame_updates_fps(self):
        stats = LoopStats()
        stats.record_frame(now=100.0)
        stats.record_frame(now=100.5)
        assert stats.frame_count == 2
        assert stats.fps == pytest.approx(2.0)
        assert stats.last_frame_ts == 100.5

    def test_to_dict(self):
        d = LoopStats(inference_failures=2).to_dict()
        assert d["frame_count"] == 0
        assert d["inference_failures"] == 2
        assert "started_at" not in d

    def test_loop_state_values(self):
        assert LoopState.IDLE.value == "idle"
        assert LoopState.RUNNING == "running"


class TestConnectivityResult:
    def test_to_dict(self):
        result = ConnectivityResult(online=False, url="http://pump", error="timeout")
        assert result.to_dict() == {
            "online": False,
            "url": "http://pump",
            "status_code": None,
            "latency_ms": None,
            "error": "timeout",
        }


class TestConfig:
    def test_from_dict(self, valid_config):
        config = Config.from_dict(valid_config)
        assert isinstance(config.camera, CameraConfig)
        assert isinstance(config.detection, DetectionConfig)
        assert config.detection.score_threshold == 0.6
        assert config.actuator.base_url == "http://pump.test"
        assert config.loop.read_retry_delay_s == 0.01
        assert config.web.port == 5000

    def test_defaults(self):
        config = Config.from_dict({})
        assert config.detection.target_class == 1
        assert config.actuator == ActuatorConfig()
        assert config.model.backend == "tensorflow"

    def test_class_names_keys_are_ints(self):
        model = ModelConfig.from_dict({"class_names": {"1": "weed"}})
        assert model.class_names == {1: "weed"}

    def test_to_dict_round_trip(self, valid_config):
        config = Config.from_dict(valid_config)
        assert Config.from_dict(config.to_dict()) == config
