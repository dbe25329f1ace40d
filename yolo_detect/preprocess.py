from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from .errors import PreprocessError

logger = logging.getLogger(__name__)

ImageLike = Union[np.ndarray, str, Path]

LAYOUTS = ("nchw", "nhwc")


def read_image(path: Union[str, Path]) -> np.ndarray:
    """
    Read an image from disk, keeping an alpha channel if the file has one.
    """

    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise PreprocessError(f"Could not read image at path: {path}")
    return img


def _to_uint8(image: np.ndarray) -> np.ndarray:
    if image.dtype == np.uint8:
        return image
    if image.dtype == np.uint16:
        # 16-bit PNG/TIFF: keep the high byte so values stay byte/255.
        return (image >> 8).astype(np.uint8)
    raise PreprocessError(f"Unsupported image dtype {image.dtype} (expected uint8 or uint16).")


def _to_rgb(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.ndim != 3:
        raise PreprocessError(f"Expected image shape (H, W[, C]), got {image.shape}")

    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    if channels == 4:
        # BGRA -> RGB, alpha dropped
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
    raise PreprocessError(f"Unsupported channel count {channels} (expected 1, 3 or 4).")


def preprocess(image: ImageLike, target_side: int = 640, layout: str = "nchw") -> np.ndarray:
    """
    Stretch-resize an OpenCV-style (BGR/BGRA/gray) image to a square input tensor.

    The aspect ratio is not preserved (no letterbox padding). Pixel values are
    scaled to [0, 1] as float32 in R, G, B order.

    Args:
        image: uint8 (or 16-bit, reduced to 8-bit) array (H, W), (H, W, 3) BGR
            or (H, W, 4) BGRA, or a path.
        target_side: output resolution in pixels for both axes.
        layout: "nchw" -> (1, 3, S, S) planar; "nhwc" -> (1, S, S, 3) interleaved.
    """

    if layout not in LAYOUTS:
        raise ValueError(f"layout must be one of {LAYOUTS}, got {layout!r}")
    if target_side <= 0:
        raise ValueError(f"target_side must be > 0, got {target_side}")

    if isinstance(image, (str, Path)):
        image = read_image(image)
    if image is None or not hasattr(image, "shape"):
        raise PreprocessError("image must be a NumPy array or a path to an image file.")
    if image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
        raise PreprocessError(f"Image has no pixels (shape {image.shape}).")

    rgb = _to_rgb(_to_uint8(image))
    h, w = rgb.shape[:2]
    if (w, h) != (target_side, target_side):
        rgb = cv2.resize(rgb, (target_side, target_side), interpolation=cv2.INTER_LINEAR)

    blob = rgb.astype(np.float32) / 255.0
    if layout == "nchw":
        blob = np.transpose(blob, (2, 0, 1))
    blob = np.ascontiguousarray(blob[None, ...])

    logger.debug("Preprocessed %dx%d image into tensor %s", w, h, blob.shape)
    return blob


class ImagePreprocessor:
    """
    Holds the resize side and tensor layout the paired model expects.
    """

    def __init__(self, target_side: int = 640, layout: str = "nchw"):
        if layout not in LAYOUTS:
            raise ValueError(f"layout must be one of {LAYOUTS}, got {layout!r}")
        self.target_side = int(target_side)
        self.layout = layout

    def __call__(self, image: ImageLike) -> np.ndarray:
        return preprocess(image, self.target_side, self.layout)
