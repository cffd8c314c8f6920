"""
Tests for the inference backends, with the frameworks mocked out.
"""

import asyncio
import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from inference.backend import ModelLoadError, ThreadedBackend, create_model_from_config


class FixedBackend(ThreadedBackend):
    def __init__(self, outputs, class_names=None):
        super().__init__(class_names)
        self.outputs = outputs
        self.frames = []

    def _predict(self, frame):
        self.frames.append(frame)
        return self.outputs


def _tensor(arr):
    t = MagicMock()
    t.numpy.return_value = np.asarray(arr)
    return t


class TestThreadedBackend:
    def test_infer_adapts_outputs(self):
        backend = FixedBackend(
            ([[[0.1, 0.2, 0.5, 0.6]]], [[0.8]], [[1.0]]),
            class_names={1: "weed"},
        )
        frame = np.zeros((10, 10, 3), dtype=np.uint8)

        dets = asyncio.run(backend.infer(frame))

        assert len(dets) == 1
        assert dets[0].class_id == 1
        assert dets[0].class_name == "weed"
        assert backend.frames[0] is frame
        assert backend.last_latency_ms is not None

    def test_bad_outputs_raise(self):
        backend = FixedBackend(([[0, 0, 1, 1]], [0.8, 0.9], [1]))
        with pytest.raises(ValueError):
            backend.detect(np.zeros((4, 4, 3), dtype=np.uint8))


class TestCreateModelFromConfig:
    def test_unknown_backend(self):
        with pytest.raises(ModelLoadError, match="Unknown model backend"):
            create_model_from_config({"backend": "onnx", "path": "model.onnx"})

    def test_tensorflow_missing_path(self, tmp_path):
        fake_tf = MagicMock()
        with patch.dict(sys.modules, {"tensorflow": fake_tf}):
            with pytest.raises(ModelLoadError, match="does not exist"):
                create_model_from_config({"backend": "tensorflow", "path": str(tmp_path / "missing")})

    def test_load_errors_are_wrapped(self, tmp_path):
        fake_tf = MagicMock()
        fake_tf.saved_model.load.side_effect = OSError("corrupt saved_model.pb")
        with patch.dict(sys.modules, {"tensorflow": fake_tf}):
            with pytest.raises(ModelLoadError, match="corrupt"):
                create_model_from_config({"backend": "tensorflow", "path": str(tmp_path)})


class TestTensorFlowBackend:
    def test_predict_reads_detection_outputs(self, tmp_path):
        fn = MagicMock(return_value={
            "detection_boxes": _tensor([[[0.1, 0.2, 0.5, 0.6], [0.0, 0.0, 0.2, 0.2]]]),
            "detection_scores": _tensor([[0.9, 0.4]]),
            "detection_classes": _tensor([[1.0, 2.0]]),
        })
        fake_tf = MagicMock()
        fake_tf.saved_model.load.return_value.signatures = {"serving_default": fn}

        with patch.dict(sys.modules, {"tensorflow": fake_tf}):
            backend = create_model_from_config(
                {"backend": "tensorflow", "path": str(tmp_path), "class_names": {"1": "weed"}}
            )
            dets = backend.detect(np.zeros((48, 64, 3), dtype=np.uint8))

        batch = fake_tf.convert_to_tensor.call_args[0][0]
        assert batch.shape == (1, 48, 64, 3)
        assert [d.class_id for d in dets] == [1, 2]
        assert dets[0].class_name == "weed"
        assert dets[1].score == pytest.approx(0.4)

    def test_missing_output_keys(self, tmp_path):
        fn = MagicMock(return_value={"detection_boxes": _tensor([[]])})
        fake_tf = MagicMock()
        fake_tf.saved_model.load.return_value.signatures = {"serving_default": fn}

        with patch.dict(sys.modules, {"tensorflow": fake_tf}):
            backend = create_model_from_config({"backend": "tensorflow", "path": str(tmp_path)})
            with pytest.raises(RuntimeError, match="missing keys"):
                backend.detect(np.zeros((8, 8, 3), dtype=np.uint8))


class TestUltralyticsBackend:
    def test_boxes_are_reordered(self):
        result = MagicMock()
        result.boxes.xyxyn = np.array([[0.2, 0.1, 0.6, 0.5]])
        result.boxes.conf = np.array([0.75])
        result.boxes.cls = np.array([1.0])
        model = MagicMock()
        model.names = {0: "crop", 1: "weed"}
        model.predict.return_value = [result]
        fake_ultralytics = MagicMock()
        fake_ultralytics.YOLO.return_value = model

        with patch.dict(sys.modules, {"ultralytics": fake_ultralytics}):
            backend = create_model_from_config({"backend": "ultralytics", "path": "weeds.pt"})
            dets = backend.detect(np.zeros((8, 8, 3), dtype=np.uint8))

        assert len(dets) == 1
        box = dets[0].box
        assert (box.y_min, box.x_min, box.y_max, box.x_max) == pytest.approx((0.1, 0.2, 0.5, 0.6))
        assert dets[0].class_name == "weed"

    def test_no_boxes(self):
        result = MagicMock()
        result.boxes = None
        model = MagicMock()
        model.names = {}
        model.predict.return_value = [result]
        fake_ultralytics = MagicMock()
        fake_ultralytics.YOLO.return_value = model

        with patch.dict(sys.modules, {"ultralytics": fake_ultralytics}):
            backend = create_model_from_config({"backend": "ultralytics", "path": "weeds.pt"})
            assert backend.detect(np.zeros((8, 8, 3), dtype=np.uint8)) == []
