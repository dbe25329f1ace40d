"""
YOLO object detection for single-scale heads with a plane-major
(4 + num_classes, candidates) output.

Pre/post-processing only needs NumPy and OpenCV; the onnxruntime engine is
imported lazily when a model is loaded.
"""

from .class_names import COCO_CLASSES, ClassNameResolver, load_class_names
from .config import DetectorConfig, load_config
from .errors import (
    InferenceError,
    LoadError,
    ModelNotLoadedError,
    PreprocessError,
    ShapeError,
    YoloDetectError,
)
from .nms import NMSConfig, iou, iou_matrix, nms, suppress
from .postprocess import YoloPostConfig, YoloPostprocessor, filter_candidates
from .preprocess import ImagePreprocessor, preprocess, read_image
from .runtime import YoloPipeline, load_pipeline, resolve_model_path
from .serialize import detection_to_dict, detections_to_json
from .tensor import OutputTensorView, decode
from .types import BoundingBox, Candidate, Detection

__all__ = [
    "BoundingBox",
    "Candidate",
    "Detection",
    "COCO_CLASSES",
    "ClassNameResolver",
    "load_class_names",
    "DetectorConfig",
    "load_config",
    "YoloDetectError",
    "PreprocessError",
    "ShapeError",
    "LoadError",
    "ModelNotLoadedError",
    "InferenceError",
    "NMSConfig",
    "iou",
    "iou_matrix",
    "nms",
    "suppress",
    "YoloPostConfig",
    "YoloPostprocessor",
    "filter_candidates",
    "ImagePreprocessor",
    "preprocess",
    "read_image",
    "YoloPipeline",
    "load_pipeline",
    "resolve_model_path",
    "detection_to_dict",
    "detections_to_json",
    "OutputTensorView",
    "decode",
]
