from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

Box = Tuple[float, float, float, float]


def make_output(boxes: Sequence[Box], scores: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Build a (1, 4 + C, A) plane-major head output.

    boxes: per-candidate (cx, cy, w, h); scores: per-candidate class scores.
    """

    box_planes = np.asarray(boxes, dtype=np.float32).T  # (4, A)
    score_planes = np.asarray(scores, dtype=np.float32).T  # (C, A)
    return np.vstack([box_planes, score_planes])[None, ...]
