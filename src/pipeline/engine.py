"""
Frame loop controller for the weed sprayer.

Drives the capture -> infer -> filter/render -> actuate cycle on the asyncio
event loop. The camera source and detection model are injected, so the loop
runs the same against a webcam, a video file or test stubs.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from actuator.notifier import PumpNotifier
from inference.backend import DetectionModel
from models.config import Config
from models.detection import Detection
from models.frame import FrameData
from models.status import LoopState, LoopStats, StatusText
from observation.base import CameraUnavailableError, ObservationSource
from pipeline.stages.filter import DetectionFilter
from pipeline.stages.render import OverlayRenderer


@dataclass
class PipelineConfig:
    """
    Configuration for the frame loop.

    Attributes:
        frame_interval_s: Pause between iterations. 0 yields to the event
            loop once and continues immediately.
        read_retry_delay_s: Pause after a frame read that returned nothing.
    """
    frame_interval_s: float = 0.0
    read_retry_delay_s: float = 0.5


@dataclass
class IterationResult:
    """Everything one completed iteration produced."""
    frame_data: FrameData
    detections: List[Detection]
    kept: List[Detection] = field(default_factory=list)
    target_present: bool = False
    annotated: Optional[np.ndarray] = None


FrameCallback = Callable[[FrameData, IterationResult], None]


class FrameLoopController:
    """
    Start/stop state machine around the per-frame detection cycle.

    Invariants:
    - At most one inference call is in flight, including across a stop()
      followed quickly by start().
    - RUNNING is re-checked before and after inference; a result that
      resolves after stop() is discarded and never reaches the pump.
    - stop() always asks the notifier for "off".

    Example:
        controller = FrameLoopController(source, model, detection_filter, renderer, notifier)
        await controller.start()
        ...
        await controller.stop()
    """

    def __init__(
        self,
        source: ObservationSource,
        model: DetectionModel,
        detection_filter: DetectionFilter,
        renderer: OverlayRenderer,
        notifier: PumpNotifier,
        config: Optional[PipelineConfig] = None,
    ):
        self.source = source
        self.model = model
        self.detection_filter = detection_filter
        self.renderer = renderer
        self.notifier = notifier
        self.config = config or PipelineConfig()
        self.stats = LoopStats()
        self.status_text: str = StatusText.READY
        self.latest_frame: Optional[np.ndarray] = None
        self._state = LoopState.IDLE
        self._generation = 0
        self._source_owner = 0
        self._task: Optional[asyncio.Task] = None
        self._read_lock = asyncio.Lock()
        self._infer_lock = asyncio.Lock()
        self._inference_in_flight = 0
        self._callbacks: List[FrameCallback] = []

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == LoopState.RUNNING

    @property
    def inference_in_flight(self) -> int:
        return self._inference_in_flight

    def add_callback(self, callback: FrameCallback) -> None:
        """
        Add a callback to be called after each completed iteration.

        Args:
            callback: Function taking (frame_data, iteration_result).
        """
        self._callbacks.append(callback)

    async def start(self) -> None:
        """
        IDLE -> RUNNING. Opens the camera and schedules the first iteration.

        Raises:
            CameraUnavailableError: If the camera cannot be opened; the
                controller stays IDLE.
        """
        if self._state == LoopState.RUNNING:
            return

        # Claim the source before the first await so a winding-down loop
        # task never closes it under us
        self._generation += 1
        generation = self._generation
        self._source_owner = generation

        self.status_text = StatusText.STARTING
        try:
            await asyncio.to_thread(self.source.open)
        except CameraUnavailableError as e:
            self.status_text = f"Camera error: {e}"
            self.stats.last_error = str(e)
            logging.error(f"Camera unavailable, detection not started: {e}")
            raise

        if self._generation != generation:
            # stop() or another start() ran while the camera was opening
            if self._source_owner == generation and self._state == LoopState.IDLE:
                await asyncio.to_thread(self.source.close)
            return

        self._state = LoopState.RUNNING
        self.stats = LoopStats()
        self.status_text = StatusText.TARGET_ABSENT
        self._task = asyncio.create_task(self._run(generation))
        logging.info(f"Detection started: source={self.source.source_id}")

    async def stop(self) -> None:
        """
        RUNNING -> IDLE and force the pump off.

        An inference call already in flight is not cancelled; its result is
        dropped when it resolves.
        """
        was_running = self._state == LoopState.RUNNING
        self._generation += 1
        self._state = LoopState.IDLE
        self.status_text = StatusText.STOPPED
        self.notifier.notify(False)
        await self.notifier.flush()
        if was_running:
            logging.info(f"Detection stopped after {self.stats.frame_count} frames")

    async def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the loop task to exit after stop().

        Returns False if it is still running after `timeout` (e.g. a hung
        inference call).
        """
        task = self._task
        if task is None or task.done():
            return True
        done, _ = await asyncio.wait({task}, timeout=timeout)
        return bool(done)

    def _is_current(self, generation: int) -> bool:
        return self._state == LoopState.RUNNING and self._generation == generation

    async def _run(self, generation: int) -> None:
        try:
            while self._is_current(generation):
                await self.run_iteration(generation)
                if not self._is_current(generation):
                    break
                await asyncio.sleep(self.config.frame_interval_s)
        except Exception as e:
            logging.exception("Detection loop crashed")
            self.stats.last_error = f"Loop error: {e}"
            if self._generation == generation:
                self._state = LoopState.IDLE
                self.status_text = f"Detection halted: {e}"
                self.notifier.notify(False)
        finally:
            # A newer start() owns the source now
            if self._source_owner == generation and self._state == LoopState.IDLE:
                try:
                    await asyncio.to_thread(self.source.close)
                except Exception as e:
                    logging.warning(f"Error closing source: {e}")

    async def run_iteration(self, generation: Optional[int] = None) -> Optional[IterationResult]:
        """
        One capture -> infer -> filter/render -> actuate cycle.

        Returns None when the iteration was aborted (no frame, inference
        failure, or stopped while waiting).
        """
        generation = self._generation if generation is None else generation

        async with self._read_lock:
            frame_data = await asyncio.to_thread(self.source.read)
        if frame_data is None:
            self.stats.read_failures += 1
            logging.warning(f"Frame read failed (failures: {self.stats.read_failures})")
            await asyncio.sleep(self.config.read_retry_delay_s)
            return None

        if not self._is_current(generation):
            return None

        async with self._infer_lock:
            if not self._is_current(generation):
                return None
            self._inference_in_flight += 1
            started = time.perf_counter()
            try:
                detections = await self.model.infer(frame_data.frame)
            except Exception as e:
                self.stats.inference_failures += 1
                self.stats.last_error = f"Inference failed: {e}"
                logging.warning(f"Inference failed on frame {frame_data.frame_index}: {e}")
                return None
            finally:
                self._inference_in_flight -= 1
            self.stats.last_inference_ms = (time.perf_counter() - started) * 1000.0

        if not self._is_current(generation):
            logging.debug(f"Discarding result for frame {frame_data.frame_index}: detection stopped")
            return None

        result = self.detection_filter.process(detections)
        self.status_text = StatusText.TARGET_PRESENT if result.target_present else StatusText.TARGET_ABSENT
        annotated = self.renderer.draw(frame_data.frame, result.kept, self.status_text)
        self.latest_frame = annotated
        self.notifier.notify(result.target_present)
        self.stats.record_frame()

        iteration = IterationResult(
            frame_data=frame_data,
            detections=detections,
            kept=result.kept,
            target_present=result.target_present,
            annotated=annotated,
        )
        for callback in self._callbacks:
            try:
                callback(frame_data, iteration)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

        return iteration

    def snapshot(self) -> Dict[str, Any]:
        """Loop and pump state for the status display."""
        return {
            "state": self._state.value,
            "pump_on": self.notifier.last_notified is True,
            "pump_state": {True: "on", False: "off"}.get(self.notifier.last_notified, "unknown"),
            "status_text": self.status_text,
            "inference_in_flight": self._inference_in_flight,
            "actuator_url": self.notifier.base_url,
            "source_id": self.source.source_id,
            "stats": self.stats.to_dict(),
        }


def create_controller_from_config(
    config: Dict[str, Any],
    source: ObservationSource,
    model: DetectionModel,
    notifier: PumpNotifier,
) -> FrameLoopController:
    """
    Factory: wire the loop and its stages from the application config dict.

    Args:
        config: Full application config dict.
        source: Camera source.
        model: Loaded detection model.
        notifier: Pump notifier.
    """
    from pipeline.stages.filter import create_filter_stage
    from pipeline.stages.render import create_render_stage

    typed = Config.from_dict(config)
    return FrameLoopController(
        source=source,
        model=model,
        detection_filter=create_filter_stage(typed.detection),
        renderer=create_render_stage(typed.detection, typed.camera),
        notifier=notifier,
        config=PipelineConfig(
            frame_interval_s=typed.loop.frame_interval_s,
            read_retry_delay_s=typed.loop.read_retry_delay_s,
        ),
    )
