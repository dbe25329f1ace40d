from dataclasses import dataclass, replace
from typing import Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box in image pixel coordinates (left/top corner + size).
    """

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_ltwh(self) -> Tuple[float, float, float, float]:
        return self.left, self.top, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.left, self.top, self.right, self.bottom


@dataclass(frozen=True)
class Candidate:
    """
    Raw proposal decoded from the model output, before thresholding.

    Box values are normalized (0-1) center/size as emitted by the head.
    """

    index: int
    cx: float
    cy: float
    w: float
    h: float
    class_id: int
    score: float


@dataclass(frozen=True)
class Detection:
    """
    Final detection returned to callers.
    """

    box: BoundingBox
    confidence: float
    class_id: int
    class_name: Optional[str] = None
    # Model candidate index; used as the stable tie-break order.
    index: int = -1

    def with_class_name(self, class_name: Optional[str]) -> "Detection":
        return replace(self, class_name=class_name)
