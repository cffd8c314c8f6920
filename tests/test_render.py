"""
Tests for the overlay render stage.
"""

import numpy as np
import pytest

from conftest import make_detection
from models.config import CameraConfig, DetectionConfig
from models.detection import NormalizedBox
from pipeline.stages.render import (
    COLOR_TARGET,
    OverlayRenderer,
    RenderStageConfig,
    create_render_stage,
    label_origin,
    to_pixel_rect,
)


class TestToPixelRect:
    def test_scales_normalized_box(self):
        x, y, w, h = to_pixel_rect(NormalizedBox(0.1, 0.2, 0.5, 0.6), 640, 480)
        assert x == pytest.approx(0.2 * 640)
        assert y == pytest.approx(0.1 * 480)
        assert w == pytest.approx(0.4 * 640)
        assert h == pytest.approx(0.4 * 480)

    def test_full_frame(self):
        assert to_pixel_rect(NormalizedBox(0, 0, 1, 1), 100, 50) == (0, 0, 100, 50)


class TestLabelOrigin:
    def test_above_box(self):
        assert label_origin(30, 40) == (30, 35)

    def test_clamped_near_top(self):
        assert label_origin(30, 4) == (30, 10)
        assert label_origin(30, 10) == (30, 10)


class TestOverlayRenderer:
    def test_does_not_mutate_input(self):
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        out = OverlayRenderer(RenderStageConfig()).draw(frame, [make_detection()])
        assert not frame.any()
        assert out is not frame

    def test_draws_box_edge(self):
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        det = make_detection(box=(0.1, 0.2, 0.5, 0.6))
        out = OverlayRenderer(RenderStageConfig(line_width=1)).draw(frame, [det])
        # left edge at x=40, spanning y=10..50
        assert tuple(out[30, 40]) == COLOR_TARGET

    def test_nothing_kept_leaves_frame_unchanged(self):
        frame = np.full((60, 80, 3), 7, dtype=np.uint8)
        out = OverlayRenderer(RenderStageConfig()).draw(frame, [])
        assert np.array_equal(out, frame)

    def test_mirror_flips_boxes_with_image(self):
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        det = make_detection(box=(0.1, 0.2, 0.5, 0.6))
        out = OverlayRenderer(RenderStageConfig(line_width=1, mirror=True)).draw(frame, [det])
        # x 40..120 mirrors to 80..160
        assert tuple(out[30, 80]) == COLOR_TARGET
        assert tuple(out[30, 160]) == COLOR_TARGET
        assert not out[30, 40].any()

    def test_mirror_keeps_label_readable(self):
        """Mirrored output equals an unmirrored draw of the mirrored box."""
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        mirrored = OverlayRenderer(RenderStageConfig(mirror=True)).draw(
            frame, [make_detection(box=(0.25, 0.25, 0.5, 0.5))]
        )
        reference = OverlayRenderer(RenderStageConfig()).draw(
            frame, [make_detection(box=(0.25, 0.5, 0.5, 0.75))]
        )
        assert np.array_equal(mirrored, reference)

    def test_mirror_flips_image(self):
        frame = np.zeros((10, 20, 3), dtype=np.uint8)
        frame[:, :5] = 9
        out = OverlayRenderer(RenderStageConfig(mirror=True)).draw(frame, [])
        assert (out[:, 15:] == 9).all()
        assert not out[:, :5].any()
        assert (frame[:, :5] == 9).all()

    def test_status_banner(self):
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        out = OverlayRenderer(RenderStageConfig()).draw(frame, [], status_text="No weed detected")
        assert out[80:, :].any()


class TestCreateRenderStage:
    def test_from_config(self):
        renderer = create_render_stage(DetectionConfig(label="Dandelion"), CameraConfig(mirror_preview=True))
        assert renderer._config.label == "Dandelion"
        assert renderer._config.mirror is True

    def test_defaults_without_camera_section(self):
        renderer = create_render_stage(DetectionConfig())
        assert renderer._config.label == "Weed"
        assert renderer._config.mirror is False
