from __future__ import annotations

import asyncio
import logging
import time

import cv2
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from models.config import Config
from observation.base import CameraUnavailableError
from runtime.context import RuntimeContext
from ..api_models import ControlResponse, ProbeResponse, SettingsResponse, StatusResponse, UpdateSettingsRequest
from ..services.health_service import HealthService

router = APIRouter()


def _runtime(request: Request) -> RuntimeContext:
    return request.app.state.runtime


def _control_response(rt: RuntimeContext) -> ControlResponse:
    return ControlResponse(
        ok=True,
        state=rt.controller.state.value,
        status_text=rt.controller.status_text,
    )


@router.get("/health")
def health(request: Request):
    return HealthService(cfg=_runtime(request).config).get_health_summary()


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    """
    Status panel: loop state, last requested pump state, status text and
    loop statistics.
    """
    rt = _runtime(request)
    snap = rt.controller.snapshot()
    return StatusResponse(
        **snap,
        model_backend=rt.model_backend,
        uptime_seconds=int(time.time() - rt.start_time),
    )


@router.post("/detection/start", response_model=ControlResponse)
async def start_detection(request: Request):
    rt = _runtime(request)
    try:
        await rt.controller.start()
    except CameraUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _control_response(rt)


@router.post("/detection/stop", response_model=ControlResponse)
async def stop_detection(request: Request):
    rt = _runtime(request)
    await rt.controller.stop()
    return _control_response(rt)


@router.get("/settings", response_model=SettingsResponse)
def get_settings(request: Request):
    rt = _runtime(request)
    cfg = rt.controller.detection_filter.config
    return SettingsResponse(
        actuator_base_url=rt.notifier.base_url,
        score_threshold=cfg.score_threshold,
        target_class=cfg.target_class,
    )


@router.post("/settings", response_model=SettingsResponse)
async def update_settings(req: UpdateSettingsRequest, request: Request):
    """Change the pump address for this session (not persisted)."""
    url = req.actuator_base_url.strip()
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="actuator_base_url must start with http:// or https://")
    rt = _runtime(request)
    rt.notifier.set_base_url(url)
    return get_settings(request)


@router.get("/actuator/probe", response_model=ProbeResponse)
async def probe_actuator(request: Request):
    result = await _runtime(request).probe()
    return ProbeResponse(**result.to_dict())


@router.get("/camera/snapshot.jpg")
def camera_snapshot(request: Request):
    frame = _runtime(request).controller.latest_frame
    if frame is None:
        raise HTTPException(status_code=404, detail="No frame processed yet")
    ok, buf = cv2.imencode(".jpg", frame)
    if not ok:
        raise HTTPException(status_code=500, detail="JPEG encoding failed")
    return Response(content=buf.tobytes(), media_type="image/jpeg", headers={"Cache-Control": "no-store"})


@router.get("/camera/live.mjpg")
async def camera_live_stream(request: Request, fps: int = 0):
    """
    Stream the annotated overlay frames produced by the detection loop.
    """
    rt = _runtime(request)
    fps = fps or Config.from_dict(rt.config).web.preview_fps
    fps = max(1, min(30, int(fps)))
    delay = 1.0 / fps

    async def gen():
        while not await request.is_disconnected():
            frame = rt.controller.latest_frame
            if frame is None:
                await asyncio.sleep(0.1)
                continue
            ok, buf = cv2.imencode(".jpg", frame)
            if ok:
                yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + buf.tobytes() + b"\r\n"
            else:
                logging.debug("Preview frame encoding failed")
            await asyncio.sleep(delay)

    return StreamingResponse(gen(), media_type="multipart/x-mixed-replace; boundary=frame")
