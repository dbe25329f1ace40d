from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import BoundingBox, Detection


@dataclass
class NMSConfig:
    iou_threshold: float = 0.5
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Intersection over union of two boxes. Zero-area unions give 0.0.
    """

    inter_w = max(0.0, min(a.right, b.right) - max(a.left, b.left))
    inter_h = max(0.0, min(a.bottom, b.bottom) - max(a.top, b.top))
    inter = inter_w * inter_h
    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def iou_matrix(boxes_a: np.ndarray, boxes_b: np.ndarray) -> np.ndarray:
    """
    Pairwise IoU for (N, 4) and (M, 4) arrays of ltwh boxes. Returns (N, M).
    """

    a = np.asarray(boxes_a, dtype=np.float64).reshape(-1, 4)
    b = np.asarray(boxes_b, dtype=np.float64).reshape(-1, 4)

    a_w = np.maximum(a[:, 2], 0.0)
    a_h = np.maximum(a[:, 3], 0.0)
    b_w = np.maximum(b[:, 2], 0.0)
    b_h = np.maximum(b[:, 3], 0.0)

    xx1 = np.maximum(a[:, None, 0], b[None, :, 0])
    yy1 = np.maximum(a[:, None, 1], b[None, :, 1])
    xx2 = np.minimum((a[:, 0] + a_w)[:, None], (b[:, 0] + b_w)[None, :])
    yy2 = np.minimum((a[:, 1] + a_h)[:, None], (b[:, 1] + b_h)[None, :])

    inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
    union = (a_w * a_h)[:, None] + (b_w * b_h)[None, :] - inter
    out = np.zeros_like(inter)
    np.divide(inter, union, out=out, where=union > 0.0)
    return out


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NMS. Expects boxes shape (N,4) in ltwh and scores shape (N,).
    Returns indices of boxes to keep, highest score first.

    Equal scores keep their input order. A box is dropped when its IoU with
    an already kept box is strictly greater than the threshold.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] == 0:
        return np.empty((0,), dtype=np.int32)

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        if rest.size == 0:
            break
        overlaps = iou_matrix(boxes[i : i + 1], boxes[rest])[0]
        order = rest[overlaps <= cfg.iou_threshold]

    return np.array(keep, dtype=np.int32)


def suppress(
    detections: Sequence[Detection],
    iou_threshold: float,
    max_detections: Optional[int] = None,
) -> List[Detection]:
    """
    Run NMS over detections and return the kept ones, confidence-descending.
    """

    detections = list(detections)
    if not detections:
        return []

    boxes = np.array([d.box.as_ltwh() for d in detections], dtype=np.float64)
    scores = np.array([d.confidence for d in detections], dtype=np.float64)
    keep = nms(boxes, scores, NMSConfig(iou_threshold=iou_threshold, max_detections=max_detections))
    return [detections[i] for i in keep]
