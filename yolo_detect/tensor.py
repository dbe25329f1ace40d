from __future__ import annotations

import logging
from typing import Iterator, Sequence, Tuple, Union

import numpy as np

from .errors import ShapeError
from .types import Candidate

logger = logging.getLogger(__name__)

NUM_BOX_FEATURES = 4

TensorLike = Union[np.ndarray, bytes, bytearray, memoryview, Sequence[float]]


def _as_flat_float32(buffer: TensorLike) -> np.ndarray:
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        raw = bytes(buffer)
        if len(raw) % 4 != 0:
            raise ShapeError(f"Byte buffer of length {len(raw)} is not a whole number of float32 values.")
        return np.frombuffer(raw, dtype="<f4").astype(np.float32)
    return np.asarray(buffer, dtype=np.float32).reshape(-1)


class OutputTensorView:
    """
    Typed, validated view over a single-scale YOLO head output.

    The buffer is plane-major: all candidates' cx, then all cy, then all w,
    then all h, then one plane of scores per class. With A candidates and
    C classes the flat length is (4 + C) * A; shapes such as (1, 4 + C, A)
    flatten to exactly that order.

    Length and alignment are checked once here; accessors afterwards are
    plain indexed reads.
    """

    def __init__(self, buffer: TensorLike, num_classes: int):
        if num_classes < 1:
            raise ValueError(f"num_classes must be >= 1, got {num_classes}")

        flat = _as_flat_float32(buffer)
        num_features = NUM_BOX_FEATURES + num_classes
        if flat.size % num_features != 0:
            raise ShapeError(
                f"Output tensor length {flat.size} is not divisible by "
                f"num_features={num_features} (4 box + {num_classes} classes)."
            )

        self.num_classes = num_classes
        self.num_features = num_features
        self.num_candidates = flat.size // num_features
        # (num_features, num_candidates); row k is feature plane k.
        self._planes = flat.reshape(num_features, self.num_candidates)

    @classmethod
    def from_bytes(cls, data: bytes, num_classes: int) -> "OutputTensorView":
        """Little-endian float32 bytes, as handed back by byte-oriented runtimes."""
        return cls(data, num_classes)

    def __len__(self) -> int:
        return self.num_candidates

    def plane(self, feature: int) -> np.ndarray:
        if not 0 <= feature < self.num_features:
            raise IndexError(f"feature {feature} out of range [0, {self.num_features})")
        return self._planes[feature]

    def boxes(self) -> np.ndarray:
        """(A, 4) normalized cx, cy, w, h."""
        return self._planes[:NUM_BOX_FEATURES].T

    def class_scores(self) -> np.ndarray:
        """(C, A) per-class scores."""
        return self._planes[NUM_BOX_FEATURES:]

    def _check(self, i: int) -> None:
        if not 0 <= i < self.num_candidates:
            raise IndexError(f"candidate {i} out of range [0, {self.num_candidates})")

    def cx(self, i: int) -> float:
        self._check(i)
        return float(self._planes[0, i])

    def cy(self, i: int) -> float:
        self._check(i)
        return float(self._planes[1, i])

    def w(self, i: int) -> float:
        self._check(i)
        return float(self._planes[2, i])

    def h(self, i: int) -> float:
        self._check(i)
        return float(self._planes[3, i])

    def score(self, class_id: int, i: int) -> float:
        self._check(i)
        if not 0 <= class_id < self.num_classes:
            raise IndexError(f"class {class_id} out of range [0, {self.num_classes})")
        return float(self._planes[NUM_BOX_FEATURES + class_id, i])


def decode_arrays(view: OutputTensorView) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized decode: (boxes (A, 4) cxcywh, class_ids (A,), scores (A,)).

    np.argmax returns the first maximum, so exact ties go to the lowest class id.
    NaN scores never win; a candidate whose scores are all NaN gets -inf.
    """

    scores_by_class = view.class_scores()
    if view.num_candidates == 0:
        return view.boxes(), np.empty((0,), dtype=np.int64), np.empty((0,), dtype=np.float32)

    scores_by_class = np.where(np.isnan(scores_by_class), np.float32(-np.inf), scores_by_class)
    class_ids = np.argmax(scores_by_class, axis=0)
    scores = scores_by_class[class_ids, np.arange(view.num_candidates)]
    return view.boxes(), class_ids, scores


def decode(output_tensor: Union[TensorLike, OutputTensorView], num_classes: int) -> Iterator[Candidate]:
    """
    Lazily yield one Candidate per model candidate, in candidate index order.

    The shape check runs eagerly, so a malformed tensor raises ShapeError
    here rather than on first iteration.
    """

    view = output_tensor if isinstance(output_tensor, OutputTensorView) else OutputTensorView(output_tensor, num_classes)
    if view.num_classes != num_classes:
        raise ShapeError(f"View was built for {view.num_classes} classes, decode asked for {num_classes}.")

    logger.debug(
        "Decoding output tensor: features=%d candidates=%d",
        view.num_features,
        view.num_candidates,
    )
    return _iter_candidates(view)


def _iter_candidates(view: OutputTensorView) -> Iterator[Candidate]:
    boxes, class_ids, scores = decode_arrays(view)
    for i in range(view.num_candidates):
        cx, cy, w, h = boxes[i]
        yield Candidate(
            index=i,
            cx=float(cx),
            cy=float(cy),
            w=float(w),
            h=float(h),
            class_id=int(class_ids[i]),
            score=float(scores[i]),
        )
