from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from .class_names import ClassNameResolver
from .nms import suppress
from .tensor import OutputTensorView, TensorLike, decode
from .types import BoundingBox, Candidate, Detection

logger = logging.getLogger(__name__)


def to_pixel_box(candidate: Candidate, image_size: Tuple[int, int]) -> BoundingBox:
    """
    Normalized center/size -> pixel left/top/width/height. Not clamped to the image.
    """

    img_w, img_h = float(image_size[0]), float(image_size[1])
    return BoundingBox(
        left=(candidate.cx - candidate.w / 2.0) * img_w,
        top=(candidate.cy - candidate.h / 2.0) * img_h,
        width=candidate.w * img_w,
        height=candidate.h * img_h,
    )


def filter_candidates(
    candidates: Iterable[Candidate],
    confidence_threshold: float,
    image_size: Tuple[int, int],
) -> Iterator[Detection]:
    """
    Keep candidates scoring strictly above the threshold, mapped to image pixels.

    Args:
        candidates: decoded candidates, any order.
        confidence_threshold: scores <= this are dropped.
        image_size: (width, height) of the original image.
    """

    for cand in candidates:
        if not cand.score > confidence_threshold:
            continue
        box = to_pixel_box(cand, image_size)
        logger.debug(
            "Candidate %d: x=%.4f y=%.4f w=%.4f h=%.4f conf=%.4f class=%d",
            cand.index,
            cand.cx,
            cand.cy,
            cand.w,
            cand.h,
            cand.score,
            cand.class_id,
        )
        yield Detection(box=box, confidence=cand.score, class_id=cand.class_id, index=cand.index)


@dataclass
class YoloPostConfig:
    """
    Post-processing settings for the fixed 4 + num_classes plane-major head.
    """

    num_classes: int = 80
    conf_threshold: float = 0.5
    iou_threshold: float = 0.5
    # None keeps every detection that survives NMS.
    max_detections: Optional[int] = None
    # If False, skip NMS and return thresholded detections by score.
    apply_nms: bool = True


class YoloPostprocessor:
    """
    Raw output tensor -> named, suppressed detections in image coordinates.
    """

    def __init__(self, cfg: YoloPostConfig, class_names: Optional[ClassNameResolver] = None):
        self.cfg = cfg
        self.class_names = class_names if class_names is not None else ClassNameResolver()

    def process(
        self,
        preds: TensorLike,
        image_size: Tuple[int, int],
        conf_threshold: Optional[float] = None,
        iou_threshold: Optional[float] = None,
    ) -> List[Detection]:
        """
        Args:
            preds: model output for a single image (any shape flattening to (4 + C) * A).
            image_size: (width, height) of the original image.
            conf_threshold/iou_threshold: per-call overrides of the config values.
        """

        conf = self.cfg.conf_threshold if conf_threshold is None else conf_threshold
        iou_thr = self.cfg.iou_threshold if iou_threshold is None else iou_threshold

        view = OutputTensorView(preds, self.cfg.num_classes)
        logger.debug("Output tensor size: %d, image size: %s", view.num_features * view.num_candidates, image_size)

        kept = list(filter_candidates(decode(view, self.cfg.num_classes), conf, image_size))
        logger.debug("Detections before NMS: %d", len(kept))
        if not kept:
            return []

        if self.cfg.apply_nms:
            kept = suppress(kept, iou_thr, max_detections=self.cfg.max_detections)
            logger.debug("Detections after NMS: %d", len(kept))
        else:
            kept = sorted(kept, key=lambda d: d.confidence, reverse=True)
            if self.cfg.max_detections is not None:
                kept = kept[: self.cfg.max_detections]

        return [d.with_class_name(self.class_names.resolve(d.class_id)) for d in kept]
