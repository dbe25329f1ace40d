from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from .types import Detection

UNKNOWN_LABEL = "unknown"


def detection_to_dict(det: Detection) -> Dict[str, Any]:
    """
    Plain-dict form used by JSON consumers (camelCase keys).
    """

    return {
        "boundingBox": {
            "left": det.box.left,
            "top": det.box.top,
            "width": det.box.width,
            "height": det.box.height,
        },
        "confidence": det.confidence,
        "classId": det.class_id,
        "className": det.class_name if det.class_name is not None else UNKNOWN_LABEL,
    }


def detections_to_json(detections: Iterable[Detection], indent: Optional[int] = None) -> str:
    payload: List[Dict[str, Any]] = [detection_to_dict(d) for d in detections]
    return json.dumps(payload, indent=indent)
