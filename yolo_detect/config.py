"""
Detector configuration.

Precedence (highest to lowest): explicit call arguments > environment
variables (`YOLO_DETECT_*`) > JSON config file > defaults. With no file and
no environment the defaults describe the stock 640x640, 80-class model.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .preprocess import LAYOUTS

logger = logging.getLogger(__name__)

ENV_PREFIX = "YOLO_DETECT_"


@dataclass(frozen=True)
class DetectorConfig:
    model_path: Optional[str] = None
    input_side: int = 640
    num_classes: int = 80
    confidence_threshold: float = 0.5
    iou_threshold: float = 0.5
    layout: str = "nchw"
    max_detections: Optional[int] = None
    class_names_path: Optional[str] = None
    intra_op_num_threads: int = 2

    def __post_init__(self) -> None:
        if self.input_side <= 0:
            raise ValueError("input_side must be > 0")
        if self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.layout not in LAYOUTS:
            raise ValueError(f"layout must be one of {LAYOUTS}")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 if provided")
        if self.intra_op_num_threads < 0:
            raise ValueError("intra_op_num_threads must be >= 0")


def _require_number(payload: Mapping[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Mapping[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_str(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload[key]
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string if provided")
    return value


_FIELDS = {
    "model_path": _optional_str,
    "input_side": _require_int,
    "num_classes": _require_int,
    "confidence_threshold": _require_number,
    "iou_threshold": _require_number,
    "layout": _optional_str,
    "max_detections": lambda p, k: None if p[k] is None else _require_int(p, k),
    "class_names_path": _optional_str,
    "intra_op_num_threads": _require_int,
}

_INT_FIELDS = {"input_side", "num_classes", "max_detections", "intra_op_num_threads"}
_FLOAT_FIELDS = {"confidence_threshold", "iou_threshold"}


def config_from_dict(payload: Mapping[str, Any]) -> DetectorConfig:
    unknown = sorted(set(payload.keys()) - set(_FIELDS))
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}")

    kwargs: Dict[str, Any] = {key: _FIELDS[key](payload, key) for key in payload}
    if kwargs.get("layout") is None:
        kwargs.pop("layout", None)
    return DetectorConfig(**kwargs)


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for key in _FIELDS:
        env_var = f"{ENV_PREFIX}{key.upper()}"
        raw = environ.get(env_var)
        if raw is None:
            continue
        try:
            if key in _INT_FIELDS:
                value: Any = None if raw.lower() in ("", "none") else int(raw)
            elif key in _FLOAT_FIELDS:
                value = float(raw)
            else:
                value = raw
        except ValueError as exc:
            raise ValueError(f"Invalid value for {env_var}: {raw!r}") from exc
        overrides[key] = value
        logger.debug("Config override from env: %s=%s", env_var, raw)
    return overrides


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DetectorConfig:
    payload: Dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Detector config not found: {path}")
        raw = path.read_text(encoding="utf-8")
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid detector config JSON: {path}") from exc
        if not isinstance(payload, dict):
            raise ValueError("Detector config must be a JSON object")
        logger.info("Loaded detector config from %s", path)

    payload.update(_env_overrides(os.environ if environ is None else environ))
    return config_from_dict(payload)
