from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import time

import httpx

from actuator.notifier import PumpNotifier
from actuator.probe import probe_actuator
from inference.backend import DetectionModel, create_model_from_config
from models.config import Config
from models.status import ConnectivityResult
from observation.base import ObservationSource
from observation.opencv_source import create_source_from_config
from pipeline.engine import FrameLoopController, create_controller_from_config


@dataclass
class RuntimeContext:
    """Holds one session's services; avoids global singletons."""

    config: Dict[str, Any]
    controller: FrameLoopController
    notifier: PumpNotifier
    client: httpx.AsyncClient
    model_backend: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def probe_timeout_s(self) -> float:
        return Config.from_dict(self.config).actuator.probe_timeout_s

    async def probe(self) -> ConnectivityResult:
        return await probe_actuator(self.client, self.notifier.base_url, timeout_s=self.probe_timeout_s)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Force the pump off, let the loop wind down, close the HTTP client."""
        await self.controller.stop()
        if not await self.controller.wait_stopped(timeout=timeout):
            logging.warning("Detection loop did not exit in time (inference still in flight)")
        await self.notifier.aclose()
        logging.info("Weed sprayer stopped")


def build_runtime(
    config: Dict[str, Any],
    source: Optional[ObservationSource] = None,
    model: Optional[DetectionModel] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> RuntimeContext:
    """
    Build the session from config. Any collaborator can be injected instead.

    Raises:
        ModelLoadError: If the configured model cannot be loaded.
    """
    typed = Config.from_dict(config)

    if source is None:
        source = create_source_from_config(config.get("camera") or {}, source_id="field-camera")
    if model is None:
        model = create_model_from_config(config.get("model") or {})
        logging.info("Detection model loaded")
    if client is None:
        client = httpx.AsyncClient()

    notifier = PumpNotifier(client, typed.actuator.base_url, timeout_s=typed.actuator.timeout_s)
    controller = create_controller_from_config(config, source=source, model=model, notifier=notifier)
    return RuntimeContext(
        config=config,
        controller=controller,
        notifier=notifier,
        client=client,
        model_backend=typed.model.backend,
    )
