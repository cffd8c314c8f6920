"""
Weed sprayer: camera-driven weed detection with remote pump control.

Captures frames from the camera, runs the detection model on each one, draws
the detected weeds on a live overlay and switches the pump on while a weed is
in view.

Usage:
    python src/main.py --config config/config.yaml
    python src/main.py --config config/config.yaml --headless --display

Arguments:
    --config: Path to configuration file
    --headless: Run the detection loop without the web interface
    --display: Show the overlay in an OpenCV window (headless mode)
    --autostart: Start detection as soon as the web interface is up
"""

import os
import sys
import argparse
import asyncio
import logging
from typing import Dict, Any, Tuple, Optional

import cv2
import uvicorn
import yaml

from inference.backend import ModelLoadError
from models.config import Config
from models.status import StatusText
from observation.base import CameraUnavailableError
from ops.logging import setup_logging
from runtime.context import RuntimeContext, build_runtime
from web.app import create_app

WINDOW_NAME = "Weed Sprayer"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        config_dir = os.path.dirname(config_path)
        merged = _read_yaml(os.path.join(config_dir, "default.yaml"))

        local_overrides_path = os.path.join(config_dir, "config.yaml")
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'actuator', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera', {}) or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (URL or file)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2 or not all(isinstance(x, int) and x > 0 for x in res):
            return False, "camera.resolution must be a list of two positive integers [width, height]"
    if camera.get('rotate', 0) not in (0, 90, 180, 270, None):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Model
    model = config.get('model', {}) or {}
    if model.get('backend', 'tensorflow') not in ('tensorflow', 'ultralytics'):
        return False, "model.backend must be one of: tensorflow, ultralytics"
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"

    # Detection filter
    detection = config.get('detection', {}) or {}
    if 'score_threshold' in detection:
        thr = detection['score_threshold']
        if not isinstance(thr, (int, float)) or not (0 <= thr <= 1):
            return False, "detection.score_threshold must be between 0 and 1"
    if 'target_class' in detection and not isinstance(detection['target_class'], int):
        return False, "detection.target_class must be an integer"

    # Actuator
    actuator = config.get('actuator', {}) or {}
    base_url = actuator.get('base_url')
    if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
        return False, "actuator.base_url must be an http:// or https:// URL"
    for key in ('timeout_s', 'probe_timeout_s'):
        if key in actuator and (not isinstance(actuator[key], (int, float)) or actuator[key] <= 0):
            return False, f"actuator.{key} must be a positive number"

    # Loop pacing
    loop = config.get('loop', {}) or {}
    for key in ('frame_interval_s', 'read_retry_delay_s'):
        if key in loop and (not isinstance(loop[key], (int, float)) or loop[key] < 0):
            return False, f"loop.{key} must be a non-negative number"

    # Web
    web = config.get('web', {}) or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be a valid TCP port"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


async def run_headless(runtime: RuntimeContext, display: bool = False) -> None:
    """Run detection without the web interface until interrupted (or 'q' in the window)."""
    quit_requested = asyncio.Event()

    if display:
        def show(frame_data, result):
            cv2.imshow(WINDOW_NAME, result.annotated)
            if cv2.waitKey(1) & 0xFF == ord('q'):
                quit_requested.set()

        runtime.controller.add_callback(show)

    try:
        await runtime.controller.start()
        await quit_requested.wait()
    finally:
        await runtime.shutdown()
        if display:
            cv2.destroyAllWindows()


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Weed Sprayer - weed detection with pump control')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--headless', action='store_true',
                        help='Run the detection loop without the web interface')
    parser.add_argument('--display', action='store_true',
                        help='Show the overlay in an OpenCV window (headless mode)')
    parser.add_argument('--autostart', action='store_true',
                        help='Start detection when the web interface comes up')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Weed Sprayer")

    logging.info(StatusText.LOADING_MODEL)
    try:
        runtime = build_runtime(config)
    except ModelLoadError as e:
        logging.error(f"Model could not be loaded: {e}")
        sys.exit(1)

    web_cfg = Config.from_dict(config).web
    if args.headless or not web_cfg.enabled:
        try:
            asyncio.run(run_headless(runtime, display=args.display))
        except CameraUnavailableError as e:
            logging.error(f"Camera unavailable: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logging.info("Interrupted by user")
        return

    host = web_cfg.host
    port = web_cfg.port
    logging.info(f"Web interface starting on {host}:{port}")
    uvicorn.run(
        create_app(runtime, autostart=args.autostart),
        host=host,
        port=port,
        log_level=config['log_level'].lower(),
    )


if __name__ == "__main__":
    main()
